"""
Tests for console progress rendering and exit code mapping.
"""

import io

import pytest
import requests

from kitsub.cli import exit_codes
from kitsub.cli.progress import ConsoleProgressReporter, format_progress_line
from kitsub.core.exceptions import (
    ArchiveFormatError,
    ChecksumParseError,
    ConfigurationError,
    ExtractionError,
    IntegrityError,
    KitsubError,
    OperationCancelledError,
    ProvisioningError,
)
from kitsub.tooling.progress import ProvisionProgress, ProvisionStage


def download(current, total):
    return ProvisionProgress(
        "ffmpeg", ProvisionStage.DOWNLOAD, current_bytes=current, total_bytes=total
    )


def extract(done, total, item="ffmpeg.exe"):
    return ProvisionProgress(
        "ffmpeg",
        ProvisionStage.EXTRACT,
        files_done=done,
        files_total=total,
        current_item=item,
    )


class TestFormatProgressLine:
    """Test format_progress_line."""

    def test_download_line(self):
        """Test a download line shows bar, percentage and sizes."""
        line = format_progress_line(download(1048576, 2097152))

        assert line == (
            "  ffmpeg  Downloading: [" + "=" * 15 + "-" * 15 + "]  50.0% 1.0/2.0 MB"
        )

    def test_download_unknown_total(self):
        """Test an unknown size shows no percentage."""
        line = format_progress_line(download(1048576, None))

        assert "?" in line
        assert line.endswith("1.0 MB")

    def test_extract_line(self):
        """Test an extraction line counts files."""
        line = format_progress_line(extract(1, 2))

        assert "Extracting" in line
        assert line.endswith("1/2 ffmpeg.exe")


class TestConsoleProgressReporter:
    """Test ConsoleProgressReporter."""

    def test_off_mode_writes_nothing(self):
        """Test 'off' disables output."""
        stream = io.StringIO()
        reporter = ConsoleProgressReporter("off", stream)

        reporter(download(1, 2))
        reporter.finish()

        assert stream.getvalue() == ""

    def test_auto_mode_requires_terminal(self):
        """Test 'auto' stays quiet on a non-terminal stream."""
        reporter = ConsoleProgressReporter("auto", io.StringIO())
        assert reporter.enabled is False

    def test_on_mode_redraws_line(self):
        """Test updates redraw in place and finish ends the line."""
        stream = io.StringIO()
        reporter = ConsoleProgressReporter("on", stream)

        reporter(download(1, 2))
        reporter(download(2, 2))
        reporter.finish()

        output = stream.getvalue()
        assert output.count("\r") == 2
        assert output.endswith("\n")

    def test_extract_completion_ends_line(self):
        """Test the last extraction update ends the line on its own."""
        stream = io.StringIO()
        reporter = ConsoleProgressReporter("on", stream)

        reporter(extract(2, 2))
        reporter.finish()

        assert stream.getvalue().count("\n") == 1

    def test_unknown_mode(self):
        """Test unknown modes are rejected."""
        with pytest.raises(ValueError, match="Unknown progress mode"):
            ConsoleProgressReporter("fancy")


class TestExitCodes:
    """Test exception to exit code mapping."""

    @pytest.mark.parametrize(
        "error,code",
        [
            (KeyboardInterrupt(), exit_codes.INTERRUPTED),
            (OperationCancelledError("cancelled"), exit_codes.INTERRUPTED),
            (ConfigurationError("bad"), exit_codes.VALIDATION_ERROR),
            (IntegrityError("mismatch"), exit_codes.INTEGRITY_FAILURE),
            (ChecksumParseError("no digest"), exit_codes.INTEGRITY_FAILURE),
            (ProvisioningError("lock"), exit_codes.PROVISIONING_FAILURE),
            (ExtractionError("ffmpeg", "ffmpeg.exe", "bin/ffmpeg.exe"), exit_codes.PROVISIONING_FAILURE),
            (ArchiveFormatError("not a 7z archive"), exit_codes.PROVISIONING_FAILURE),
            (requests.ConnectionError("offline"), exit_codes.PROVISIONING_FAILURE),
            (KitsubError("other"), exit_codes.UNEXPECTED_ERROR),
            (RuntimeError("boom"), exit_codes.UNEXPECTED_ERROR),
        ],
    )
    def test_mapping(self, error, code):
        """Test each error category has its exit code."""
        assert exit_codes.exit_code_for(error) == code
