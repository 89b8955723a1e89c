"""
File system utilities for Kitsub.

This module provides:
- An archive reader abstraction (list entries, extract one entry to a chosen
  path) over 7z, zip and tar archives, so provisioning logic does not depend
  on a particular archive library
- Safe file operations (atomic writes, guarded recursive deletion)
- Temporary directory management with guaranteed cleanup
"""

import logging
import os
import shutil
import tarfile
import tempfile
import zipfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import py7zr

from kitsub.core.exceptions import (
    ArchiveFormatError,
    IntegrityError,
    KitsubError,
    ProvisioningError,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

SUPPORTED_ARCHIVE_TYPES = ("7z", "zip", "tar", "tar.gz", "tgz", "tar.xz")

# Errors the archive libraries raise for corrupt or mistyped input
ARCHIVE_READ_ERRORS = (
    zipfile.BadZipFile,
    tarfile.TarError,
    py7zr.exceptions.ArchiveError,
    EOFError,
)


class FilesystemError(KitsubError):
    """Base exception for filesystem errors."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def normalize_archive_path(value: str) -> str:
    """Normalize an archive member path to forward slashes."""
    return value.replace("\\", "/")


def ensure_within(path: Path, parent: Path) -> Path:
    """
    Resolve a path and require it to stay under parent.

    Args:
        path: Candidate path
        parent: Directory the path must stay inside

    Returns:
        The resolved path

    Raises:
        IntegrityError: If the path escapes parent (e.g. through '../')
    """
    resolved = path.resolve()
    if not resolved.is_relative_to(parent.resolve()):
        raise IntegrityError(
            f"Path '{path}' escapes '{parent}'. "
            "This is a security risk and extraction has been blocked."
        )
    return resolved


# ============================================================================
# Archive Readers
# ============================================================================


@dataclass(frozen=True)
class ArchiveEntry:
    """A member of an archive."""

    name: str
    is_directory: bool


class ArchiveReader(ABC):
    """
    Read-only view of an archive.

    Readers are context managers; the archive is released on exit. Errors
    from the underlying archive library surface as ArchiveFormatError.
    """

    def __init__(self, archive_path: Path):
        self.archive_path = Path(archive_path)

    def list_entries(self) -> List[ArchiveEntry]:
        """List all members of the archive."""
        try:
            return self._list_entries()
        except ARCHIVE_READ_ERRORS as e:
            raise ArchiveFormatError(
                f"Failed to list {self.archive_path.name}: {e}"
            ) from e

    def extract_entry(self, entry: ArchiveEntry, destination: Path) -> None:
        """Write a single file member to the destination file path."""
        try:
            self._extract_entry(entry, destination)
        except ARCHIVE_READ_ERRORS as e:
            raise ArchiveFormatError(
                f"Failed to read {entry.name} from {self.archive_path.name}: {e}"
            ) from e

    @abstractmethod
    def _list_entries(self) -> List[ArchiveEntry]:
        pass

    @abstractmethod
    def _extract_entry(self, entry: ArchiveEntry, destination: Path) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ZipArchiveReader(ArchiveReader):
    """Reads .zip archives with zipfile."""

    def __init__(self, archive_path: Path):
        super().__init__(archive_path)
        self._zip = zipfile.ZipFile(self.archive_path, "r")

    def _list_entries(self) -> List[ArchiveEntry]:
        return [ArchiveEntry(info.filename, info.is_dir()) for info in self._zip.infolist()]

    def _extract_entry(self, entry: ArchiveEntry, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with self._zip.open(entry.name) as source, open(destination, "wb") as target:
            shutil.copyfileobj(source, target)

    def close(self) -> None:
        self._zip.close()


class TarArchiveReader(ArchiveReader):
    """Reads tar archives (optionally gzip/xz compressed) with tarfile."""

    def __init__(self, archive_path: Path):
        super().__init__(archive_path)
        self._tar = tarfile.open(self.archive_path, "r:*")

    def _list_entries(self) -> List[ArchiveEntry]:
        return [
            ArchiveEntry(member.name, not member.isfile())
            for member in self._tar.getmembers()
        ]

    def _extract_entry(self, entry: ArchiveEntry, destination: Path) -> None:
        source = self._tar.extractfile(entry.name)
        if source is None:
            raise ArchiveFormatError(f"Archive member is not a regular file: {entry.name}")

        destination.parent.mkdir(parents=True, exist_ok=True)
        with source, open(destination, "wb") as target:
            shutil.copyfileobj(source, target)

    def close(self) -> None:
        self._tar.close()


class SevenZipArchiveReader(ArchiveReader):
    """
    Reads .7z archives with py7zr.

    py7zr extracts members by name into a directory, so each member is
    extracted into a private staging directory and then moved into place.
    """

    def __init__(self, archive_path: Path):
        super().__init__(archive_path)
        self._archive = py7zr.SevenZipFile(self.archive_path, mode="r")
        self._staging = Path(tempfile.mkdtemp(prefix="kitsub-7z-"))

    def _list_entries(self) -> List[ArchiveEntry]:
        return [
            ArchiveEntry(info.filename, info.is_directory)
            for info in self._archive.list()
        ]

    def _extract_entry(self, entry: ArchiveEntry, destination: Path) -> None:
        staged = ensure_within(self._staging / entry.name, self._staging)

        self._archive.reset()
        self._archive.extract(path=self._staging, targets=[entry.name])
        if not staged.is_file():
            raise ArchiveFormatError(f"Failed to extract archive member: {entry.name}")

        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staged), str(destination))

    def close(self) -> None:
        try:
            self._archive.close()
        finally:
            shutil.rmtree(self._staging, ignore_errors=True)


def open_archive(archive_path: Path, archive_type: str) -> ArchiveReader:
    """
    Open an archive reader for a declared archive type.

    Args:
        archive_path: Path to the archive file
        archive_type: Declared type ('7z', 'zip', 'tar', 'tar.gz', 'tgz', 'tar.xz')

    Raises:
        ProvisioningError: If the archive type is not supported
        ArchiveFormatError: If the file is not a readable archive of that type
    """
    kind = archive_type.strip().lower()
    if kind == "7z":
        reader_class = SevenZipArchiveReader
    elif kind == "zip":
        reader_class = ZipArchiveReader
    elif kind in ("tar", "tar.gz", "tgz", "tar.xz"):
        reader_class = TarArchiveReader
    else:
        raise ProvisioningError(
            f"Unsupported archive type: {archive_type}. "
            f"Supported: {', '.join(SUPPORTED_ARCHIVE_TYPES)}"
        )

    try:
        return reader_class(archive_path)
    except ARCHIVE_READ_ERRORS as e:
        raise ArchiveFormatError(
            f"Cannot open {Path(archive_path).name} as a {kind} archive: {e}"
        ) from e


def is_supported_archive_type(archive_type: str) -> bool:
    return archive_type.strip().lower() in SUPPORTED_ARCHIVE_TYPES


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Example:
        >>> atomic_write('state.json', '{"key": "value"}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, 0o777)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


@contextmanager
def temporary_directory(prefix: str = "kitsub-tools-"):
    """
    Context manager for a temporary directory that is always removed.

    Example:
        >>> with temporary_directory() as tmp:
        ...     (tmp / 'archive.7z').write_bytes(data)
    """
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix))

    try:
        yield temp_dir
    finally:
        if temp_dir.exists():
            try:
                safe_rmtree(temp_dir)
            except FilesystemError as e:
                logger.warning(f"Failed to remove temporary directory {temp_dir}: {e}")


__all__ = [
    "ARCHIVE_READ_ERRORS",
    "ArchiveEntry",
    "ArchiveReader",
    "FilesystemError",
    "SUPPORTED_ARCHIVE_TYPES",
    "SevenZipArchiveReader",
    "TarArchiveReader",
    "ZipArchiveReader",
    "atomic_write",
    "ensure_within",
    "is_supported_archive_type",
    "normalize_archive_path",
    "open_archive",
    "safe_rmtree",
    "temporary_directory",
]
