"""
Unit tests for download module.

Tests download functionality with mocked network requests.
"""

import threading

import pytest
import requests
import responses

from kitsub.core.download import (
    ProgressThrottle,
    download_file,
    fetch_text,
)
from kitsub.core.exceptions import OperationCancelledError

URL = "https://downloads.example.com/tool.zip"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestProgressThrottle:
    """Test time-or-size based progress throttling."""

    def test_not_due_initially(self):
        """Test nothing is emitted before either interval elapses."""
        clock = FakeClock()
        throttle = ProgressThrottle(interval_seconds=0.1, interval_bytes=1000, clock=clock)

        assert throttle.should_emit(10) is False

    def test_due_after_time_interval(self):
        """Test an update is due once the time interval elapses."""
        clock = FakeClock()
        throttle = ProgressThrottle(interval_seconds=0.1, interval_bytes=1000, clock=clock)

        clock.now = 0.15
        assert throttle.should_emit(10) is True
        assert throttle.should_emit(20) is False

    def test_due_after_byte_interval(self):
        """Test an update is due once the byte interval is crossed."""
        clock = FakeClock()
        throttle = ProgressThrottle(interval_seconds=0.1, interval_bytes=1000, clock=clock)

        assert throttle.should_emit(1000) is True
        assert throttle.should_emit(1500) is False
        assert throttle.should_emit(2000) is True


class TestDownloadFile:
    """Test streaming downloads."""

    @responses.activate
    def test_download_writes_file(self, tmp_path):
        """Test content is written to the destination."""
        responses.add(responses.GET, URL, body=b"archive-bytes")

        dest = tmp_path / "nested" / "tool.zip"
        result = download_file(URL, dest)

        assert result == dest
        assert dest.read_bytes() == b"archive-bytes"

    @responses.activate
    def test_final_progress_update(self, tmp_path):
        """Test a final update reports the full size."""
        body = b"x" * 10
        responses.add(
            responses.GET, URL, body=body, headers={"content-length": str(len(body))}
        )

        updates = []
        download_file(URL, tmp_path / "tool.zip", progress_callback=updates.append)

        assert updates[-1].bytes_downloaded == 10
        assert updates[-1].total_bytes == 10

    @responses.activate
    def test_progress_is_throttled(self, tmp_path):
        """Test chunk updates are limited by the throttle."""
        body = b"x" * 100
        responses.add(responses.GET, URL, body=body)

        clock = FakeClock()
        throttle = ProgressThrottle(interval_seconds=10, interval_bytes=50, clock=clock)
        updates = []
        download_file(
            URL,
            tmp_path / "tool.zip",
            progress_callback=updates.append,
            chunk_size=10,
            throttle=throttle,
        )

        # Two byte-interval updates plus the final one
        assert [u.bytes_downloaded for u in updates] == [50, 100, 100]

    @responses.activate
    def test_http_error_propagates(self, tmp_path):
        """Test HTTP failures raise requests exceptions."""
        responses.add(responses.GET, URL, status=404)

        with pytest.raises(requests.HTTPError):
            download_file(URL, tmp_path / "tool.zip")

    @responses.activate
    def test_cancellation(self, tmp_path):
        """Test a set cancel event aborts the download."""
        responses.add(responses.GET, URL, body=b"x" * 100)
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(OperationCancelledError):
            download_file(URL, tmp_path / "tool.zip", cancel_event=cancel, chunk_size=10)

    def test_empty_url(self, tmp_path):
        """Test empty URL raises ValueError."""
        with pytest.raises(ValueError, match="URL cannot be empty"):
            download_file("", tmp_path / "tool.zip")


class TestFetchText:
    """Test fetching checksum documents."""

    @responses.activate
    def test_fetch_text(self):
        """Test body is returned as text."""
        responses.add(responses.GET, URL + ".sha256", body="abc  tool.zip\n")

        assert fetch_text(URL + ".sha256") == "abc  tool.zip\n"

    @responses.activate
    def test_fetch_text_error(self):
        """Test HTTP failures raise."""
        responses.add(responses.GET, URL + ".sha256", status=500)

        with pytest.raises(requests.HTTPError):
            fetch_text(URL + ".sha256")
