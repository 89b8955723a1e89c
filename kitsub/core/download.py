"""
Network download manager with throttled progress tracking.

This module provides streaming HTTP downloads for tool archives:
- Archives are streamed to disk in bounded chunks, never buffered in memory
- Progress is reported at most every PROGRESS_INTERVAL_SECONDS or every
  PROGRESS_INTERVAL_BYTES, whichever comes first, plus once at the end
- A cancellation event is checked between chunks
- Failures propagate to the caller; there is no automatic retry
"""

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests

from kitsub.core.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
PROGRESS_INTERVAL_SECONDS = 0.1
PROGRESS_INTERVAL_BYTES = 256 * 1024


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: Optional[int]  # None when the server sends no content-length


class ProgressThrottle:
    """
    Decides when a progress update is due.

    An update is due when either the time interval or the byte interval has
    elapsed since the last emitted update.
    """

    def __init__(
        self,
        interval_seconds: float = PROGRESS_INTERVAL_SECONDS,
        interval_bytes: int = PROGRESS_INTERVAL_BYTES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval_seconds = interval_seconds
        self.interval_bytes = interval_bytes
        self._clock = clock
        self._last_time = clock()
        self._last_bytes = 0

    def should_emit(self, current_bytes: int) -> bool:
        """Return True and reset the window if an update is due."""
        now = self._clock()
        if (
            now - self._last_time >= self.interval_seconds
            or current_bytes - self._last_bytes >= self.interval_bytes
        ):
            self._last_time = now
            self._last_bytes = current_bytes
            return True
        return False


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    cancel_event: Optional[threading.Event] = None,
    chunk_size: int = CHUNK_SIZE,
    throttle: Optional[ProgressThrottle] = None,
) -> Path:
    """
    Stream a URL to a local file.

    Args:
        url: URL to download from
        destination: Local path to save file
        progress_callback: Optional callback for throttled progress updates
        cancel_event: Optional event; when set the download is aborted
        chunk_size: Bytes read per iteration
        throttle: Optional progress throttle (default: time-or-size based)

    Returns:
        Path to downloaded file

    Raises:
        requests.RequestException: On HTTP or connection failures
        OperationCancelledError: If cancel_event is set mid-download
        ValueError: If URL is empty

    Example:
        >>> download_file("https://example.com/tools.7z", Path("tmp/tools.7z"))
    """
    if not url:
        raise ValueError("URL cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Downloading from {url}")

    with requests.get(url, stream=True, allow_redirects=True) as response:
        response.raise_for_status()

        content_length = response.headers.get("content-length")
        total_size = int(content_length) if content_length else None

        throttle = throttle or ProgressThrottle()
        downloaded = 0

        with open(destination, "wb") as f:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if cancel_event is not None and cancel_event.is_set():
                    raise OperationCancelledError(f"Download cancelled: {url}")

                if not chunk:
                    continue

                f.write(chunk)
                downloaded += len(chunk)

                if progress_callback and throttle.should_emit(downloaded):
                    progress_callback(DownloadProgress(downloaded, total_size))

    if progress_callback:
        progress_callback(DownloadProgress(downloaded, total_size))

    logger.debug(f"Download complete: {destination} ({downloaded} bytes)")
    return destination


def fetch_text(url: str) -> str:
    """
    Fetch a small text document such as a checksum file.

    Raises:
        requests.RequestException: On HTTP or connection failures
    """
    response = requests.get(url, allow_redirects=True)
    response.raise_for_status()
    return response.text


__all__ = [
    "CHUNK_SIZE",
    "DownloadProgress",
    "ProgressThrottle",
    "download_file",
    "fetch_text",
]
