"""
Unit tests for SHA256 verification and checksum parsing.
"""

import hashlib

import pytest

from kitsub.core.exceptions import ChecksumParseError, IntegrityError
from kitsub.core.verification import (
    compute_sha256,
    hashes_equal,
    parse_checksum,
)

DIGEST_A = "a" * 64
DIGEST_B = "0123456789abcdef" * 4


class TestComputeSha256:
    """Test file hashing."""

    def test_matches_hashlib(self, tmp_path):
        """Test digest matches hashlib over the full content."""
        data = b"x" * (200 * 1024)
        path = tmp_path / "blob.bin"
        path.write_bytes(data)

        assert compute_sha256(path) == hashlib.sha256(data).hexdigest()

    def test_missing_file(self, tmp_path):
        """Test missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            compute_sha256(tmp_path / "missing.bin")


class TestHashesEqual:
    """Test digest comparison."""

    def test_case_insensitive(self):
        """Test comparison ignores case."""
        assert hashes_equal(DIGEST_B, DIGEST_B.upper())

    def test_ignores_surrounding_whitespace(self):
        """Test comparison strips whitespace."""
        assert hashes_equal(f" {DIGEST_B}\n", DIGEST_B)

    def test_different(self):
        """Test different digests are not equal."""
        assert not hashes_equal(DIGEST_A, DIGEST_B)


class TestParseChecksum:
    """Test extracting a SHA256 value from checksum sources."""

    def test_bare_digest(self):
        """Test a file holding only a digest."""
        assert parse_checksum(f"{DIGEST_B}\n") == DIGEST_B

    def test_digest_with_file_name(self):
        """Test a sha256sum-style single line."""
        assert parse_checksum(f"{DIGEST_B.upper()} *ffmpeg.7z") == DIGEST_B

    def test_first_digest_without_entry(self):
        """Test the first digest wins when no entry is given."""
        content = f"{DIGEST_A}  one.7z\n{DIGEST_B}  two.7z\n"
        assert parse_checksum(content) == DIGEST_A

    def test_entry_selects_line(self):
        """Test an entry filter selects the matching line."""
        content = f"{DIGEST_A}  mkvtoolnix-32-bit.7z\n{DIGEST_B}  mkvtoolnix.7z\n"
        assert parse_checksum(content, "mkvtoolnix.7z") == DIGEST_B

    def test_entry_match_is_case_insensitive(self):
        """Test entry matching ignores case."""
        content = f"{DIGEST_B}  MKVToolNix.7z\n"
        assert parse_checksum(content, "mkvtoolnix.7z") == DIGEST_B

    def test_longer_hex_run_is_not_a_digest(self):
        """Test a 65-character hex run is not mistaken for a SHA256."""
        with pytest.raises(ChecksumParseError):
            parse_checksum("a" * 65)

    def test_no_digest(self):
        """Test content without a digest raises."""
        with pytest.raises(ChecksumParseError, match="Unable to parse SHA256"):
            parse_checksum("not a checksum")

    def test_entry_not_found(self):
        """Test a missing entry raises naming the entry."""
        with pytest.raises(ChecksumParseError, match="other.7z"):
            parse_checksum(f"{DIGEST_B}  mkvtoolnix.7z\n", "other.7z")

    def test_parse_error_is_integrity_error(self):
        """Test parse failures are integrity failures."""
        with pytest.raises(IntegrityError):
            parse_checksum("")
