"""
Console rendering of provisioning progress.

Draws a single-line text bar on stderr, redrawn in place with carriage
returns. In ``auto`` mode the bar is only drawn when stderr is a terminal.
"""

import sys
from typing import Optional, TextIO

from kitsub.tooling.progress import ProvisionProgress, ProvisionStage

PROGRESS_MODES = ("auto", "on", "off")
BAR_LENGTH = 30


class ConsoleProgressReporter:
    """
    Progress callback that renders ProvisionProgress updates.

    Example:
        >>> reporter = ConsoleProgressReporter("auto")
        >>> manager.ensure_cached("win-x64", options, progress=reporter)
        >>> reporter.finish()
    """

    def __init__(self, mode: str = "auto", stream: Optional[TextIO] = None):
        if mode not in PROGRESS_MODES:
            raise ValueError(f"Unknown progress mode: {mode}")

        self.stream = stream or sys.stderr
        if mode == "auto":
            isatty = getattr(self.stream, "isatty", None)
            self.enabled = bool(isatty and isatty())
        else:
            self.enabled = mode == "on"
        self._line_open = False

    def __call__(self, update: ProvisionProgress) -> None:
        if not self.enabled:
            return

        self.stream.write("\r" + format_progress_line(update))
        self.stream.flush()
        self._line_open = True

        if update.stage is ProvisionStage.EXTRACT and (
            update.files_total is not None and update.files_done >= update.files_total
        ):
            self.finish()

    def finish(self) -> None:
        """End the current progress line."""
        if self._line_open:
            self.stream.write("\n")
            self.stream.flush()
            self._line_open = False


def format_progress_line(update: ProvisionProgress) -> str:
    """
    Format one progress line.

    Example:
        >>> format_progress_line(ProvisionProgress("ffmpeg", ProvisionStage.DOWNLOAD,
        ...                                        current_bytes=1048576, total_bytes=2097152))
        '  ffmpeg  Downloading: [===============---------------]  50.0% 1.0/2.0 MB'
    """
    percentage = update.percentage
    if percentage is None:
        bar = "?" * BAR_LENGTH
        percent_text = "   ?  "
    else:
        filled = int(BAR_LENGTH * percentage / 100)
        bar = "=" * filled + "-" * (BAR_LENGTH - filled)
        percent_text = f"{percentage:5.1f}%"

    if update.stage is ProvisionStage.DOWNLOAD:
        mb_done = update.current_bytes / 1024 / 1024
        if update.total_bytes:
            detail = f"{mb_done:.1f}/{update.total_bytes / 1024 / 1024:.1f} MB"
        else:
            detail = f"{mb_done:.1f} MB"
        label = "Downloading"
    else:
        detail = f"{update.files_done}/{update.files_total or '?'} {update.current_item or ''}"
        label = "Extracting "

    return f"  {update.tool_name}  {label}: [{bar}] {percent_text} {detail.rstrip()}"


__all__ = ["ConsoleProgressReporter", "PROGRESS_MODES", "format_progress_line"]
