"""
SHA256 verification and checksum-source parsing.

This module provides:
- Streaming SHA256 computation for files
- Constant-time hash comparison
- Extraction of an expected SHA256 value from checksum text, either a bare
  digest file or a multi-artifact SHA256SUMS-style listing
"""

import hashlib
import logging
import re
import secrets
from pathlib import Path
from typing import Optional

from kitsub.core.exceptions import ChecksumParseError

logger = logging.getLogger(__name__)

SHA256_PATTERN = re.compile(r"(?<![0-9a-fA-F])[0-9a-fA-F]{64}(?![0-9a-fA-F])")

_CHUNK_SIZE = 64 * 1024


def compute_sha256(file_path: Path) -> str:
    """
    Compute the SHA256 of a file.

    Args:
        file_path: Path to file

    Returns:
        Lower-case hex digest

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            hasher.update(chunk)

    return hasher.hexdigest()


def hashes_equal(actual: str, expected: str) -> bool:
    """Compare two hex digests case-insensitively in constant time."""
    return secrets.compare_digest(
        actual.strip().lower().encode("utf-8"),
        expected.strip().lower().encode("utf-8"),
    )


def parse_checksum(content: str, entry: Optional[str] = None) -> str:
    """
    Extract an expected SHA256 value from checksum source text.

    Without an entry filter the first 64-hex-character token in the content
    is returned. With an entry filter only lines containing the entry name
    (case-insensitive) are considered, so a single SHA256SUMS listing can
    serve several artifacts.

    Args:
        content: Text fetched from the checksum URL
        entry: Optional artifact name to select one line

    Returns:
        Lower-case SHA256 hex digest

    Raises:
        ChecksumParseError: If no matching digest is found

    Example:
        >>> parse_checksum("ab12...ef  mkvtoolnix.7z\\n", "mkvtoolnix.7z")
        'ab12...ef'
    """
    if not entry or not entry.strip():
        match = SHA256_PATTERN.search(content)
        if not match:
            raise ChecksumParseError("Unable to parse SHA256 from checksum source.")
        return match.group(0).lower()

    needle = entry.strip().lower()
    for line in content.splitlines():
        if needle not in line.lower():
            continue

        match = SHA256_PATTERN.search(line)
        if match:
            return match.group(0).lower()

    raise ChecksumParseError(f"SHA256 entry '{entry}' not found in checksum source.")


__all__ = [
    "SHA256_PATTERN",
    "compute_sha256",
    "hashes_equal",
    "parse_checksum",
]
