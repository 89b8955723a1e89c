"""
Toolset bundle management.

A toolset is found either next to the application (bundled) or in the per-user
tools cache, where it is provisioned on demand:

1. Compute the versioned toolset directory
2. Fast path: if every executable exists and matches the hash sidecar, use it
3. Otherwise take the toolset lock and re-check (another process may have
   finished provisioning while we waited)
4. For each tool family: download the archive, verify its SHA256 against the
   published checksum, extract the declared files
5. Record the SHA256 of every extracted executable in ``tool-hashes.json``

The sidecar is only written after every family succeeded, so an interrupted
or failed run always leaves the cache invalid and the next run retries from
scratch.

Example:
    >>> manager = ToolBundleManager(ManifestLoader().load())
    >>> result = manager.ensure_cached("win-x64", ResolveOptions())
    >>> result.paths.ffmpeg
    PosixPath('/home/user/.local/share/kitsub/tools/win-x64/.../ffmpeg/bin/ffmpeg.exe')
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional
from urllib.parse import urlparse

from kitsub.core.directory import ToolCachePaths, get_app_base_dir
from kitsub.core.download import DownloadProgress, download_file, fetch_text
from kitsub.core.exceptions import (
    ArchiveFormatError,
    ExtractionError,
    IntegrityError,
    OperationCancelledError,
    ProvisioningError,
)
from kitsub.core.filesystem import (
    ArchiveEntry,
    ArchiveReader,
    atomic_write,
    ensure_within,
    is_supported_archive_type,
    normalize_archive_path,
    open_archive,
    safe_rmtree,
    temporary_directory,
)
from kitsub.core.locking import DEFAULT_LOCK_TIMEOUT, toolset_lock
from kitsub.core.verification import compute_sha256, hashes_equal, parse_checksum
from kitsub.tooling.manifest import (
    REQUIRED_FILES,
    TOOL_FILES,
    ArchiveDefinition,
    ToolsManifest,
)
from kitsub.tooling.progress import ProgressCallback, ProvisionProgress, ProvisionStage
from kitsub.tooling.resolution import BundleResult, ResolveOptions, ToolPaths, ToolSource

logger = logging.getLogger(__name__)

HASH_SIDECAR_NAME = "tool-hashes.json"
BUNDLED_TOOLS_DIR = "tools"


# ============================================================================
# Hash Sidecar
# ============================================================================


@dataclass
class HashSidecar:
    """
    Recorded SHA256 of every executable in a toolset directory.

    Keys are paths relative to the toolset directory, with forward slashes.
    """

    files: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> Optional["HashSidecar"]:
        """Load a sidecar, or None if it is missing or unreadable."""
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.debug(f"Ignoring unreadable hash sidecar {path}: {e}")
            return None

        files = data.get("files") if isinstance(data, dict) else None
        if not isinstance(files, dict):
            logger.debug(f"Ignoring malformed hash sidecar {path}")
            return None

        return cls(files={str(k): str(v) for k, v in files.items()})

    @classmethod
    def compute(cls, paths: ToolPaths, toolset_root: Path) -> "HashSidecar":
        """Hash every executable in paths."""
        files = {}
        for _, tool_path in paths.items():
            files[_relative_key(tool_path, toolset_root)] = compute_sha256(tool_path)
        return cls(files=files)

    def save(self, path: Path) -> None:
        atomic_write(path, json.dumps({"files": self.files}, indent=2))

    def hash_for(self, relative_key: str) -> Optional[str]:
        if relative_key in self.files:
            return self.files[relative_key]

        lowered = relative_key.lower()
        for key, value in self.files.items():
            if key.lower() == lowered:
                return value
        return None


def _relative_key(path: Path, toolset_root: Path) -> str:
    return path.relative_to(toolset_root).as_posix()


# ============================================================================
# Bundle Manager
# ============================================================================


class ToolBundleManager:
    """
    Locates bundled toolsets and provisions cached ones.

    Args:
        manifest: Loaded and validated tools manifest
        cache_paths: Cache path builder (default: ToolCachePaths())
        bundle_root: Directory holding bundled toolsets
            (default: ``<app base dir>/tools``)
        lock_timeout: Seconds to wait for the provisioning lock
    """

    def __init__(
        self,
        manifest: ToolsManifest,
        cache_paths: Optional[ToolCachePaths] = None,
        bundle_root: Optional[Path] = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ):
        self.manifest = manifest
        self.cache_paths = cache_paths or ToolCachePaths()
        self.bundle_root = (
            Path(bundle_root) if bundle_root else get_app_base_dir() / BUNDLED_TOOLS_DIR
        )
        self.lock_timeout = lock_timeout

    def try_get_bundled(self, platform_id: str) -> Optional[BundleResult]:
        """
        Find a toolset shipped next to the application.

        Returns:
            BundleResult if every required executable is present, else None
        """
        entry = self.manifest.get_platform(platform_id)
        if entry is None:
            return None

        base = self.bundle_root / platform_id
        paths = build_tool_paths(base, entry)
        if not all(p.is_file() for _, p in paths.items()):
            return None

        logger.debug(f"Found bundled toolset at {base}")
        return BundleResult(base_directory=base, source=ToolSource.BUNDLED, paths=paths)

    def try_get_cached(
        self, platform_id: str, cache_dir: Optional[str] = None
    ) -> Optional[BundleResult]:
        """
        Return the cached toolset if it is complete and untampered. Never downloads.
        """
        entry = self.manifest.get_platform(platform_id)
        if entry is None:
            return None

        toolset_root = self.toolset_root(platform_id, cache_dir)
        paths = build_tool_paths(toolset_root, entry)
        if not is_cache_valid(paths, toolset_root):
            return None

        return BundleResult(
            base_directory=toolset_root, source=ToolSource.CACHE, paths=paths
        )

    def ensure_cached(
        self,
        platform_id: str,
        options: ResolveOptions,
        force: bool = False,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[BundleResult]:
        """
        Make sure a valid toolset is cached, provisioning it if needed.

        Args:
            platform_id: Platform identifier
            options: Resolve options (cache directory, dry run)
            force: Re-provision even if the cache is valid
            progress: Optional progress callback
            cancel_event: Optional event; when set, provisioning is aborted

        Returns:
            BundleResult, or None if the manifest has no entry for the platform

        Raises:
            ProvisioningError: Lock timeout, unsupported archive type, failed extraction
            ArchiveFormatError: Archive unreadable as its declared type
            IntegrityError: Checksum mismatch or unsafe archive path
            OperationCancelledError: If cancel_event is set
            requests.RequestException: On download failures
        """
        entry = self.manifest.get_platform(platform_id)
        if entry is None:
            logger.warning(f"Tools manifest has no entry for platform {platform_id}.")
            return None

        toolset_root = self.toolset_root(platform_id, options.cache_dir)
        paths = build_tool_paths(toolset_root, entry)
        result = BundleResult(
            base_directory=toolset_root, source=ToolSource.CACHE, paths=paths
        )

        if not force and is_cache_valid(paths, toolset_root):
            logger.debug(f"Using cached toolset at {toolset_root}")
            return result

        with toolset_lock(toolset_root, timeout=self.lock_timeout):
            if not force and is_cache_valid(paths, toolset_root):
                logger.debug(f"Toolset provisioned by another process: {toolset_root}")
                return result

            if options.dry_run:
                logger.info(
                    f"Dry run: would provision toolset {self.manifest.toolset_version} "
                    f"for {platform_id} into {toolset_root}"
                )
                result.dry_run = True
                return result

            families = _ordered_families(entry)
            for family, definition in families:
                if not is_supported_archive_type(definition.archive_type):
                    raise ProvisioningError(
                        f"Unsupported archive type '{definition.archive_type}' "
                        f"for {family} ({platform_id})."
                    )

            logger.info(
                f"Provisioning toolset {self.manifest.toolset_version} "
                f"for {platform_id} into {toolset_root}"
            )
            for family, definition in families:
                _check_cancelled(cancel_event)
                self._provision_family(
                    family, definition, toolset_root, progress, cancel_event
                )

            HashSidecar.compute(paths, toolset_root).save(
                toolset_root / HASH_SIDECAR_NAME
            )
            logger.info(f"Toolset ready at {toolset_root}")

        return result

    def clean(self, platform_id: str, cache_dir: Optional[str] = None) -> bool:
        """
        Delete the cached toolset for a platform.

        Returns:
            True if a directory was removed, False if nothing was cached
        """
        toolset_root = self.toolset_root(platform_id, cache_dir)
        if not toolset_root.exists():
            logger.info(f"No cached toolset at {toolset_root}")
            return False

        safe_rmtree(toolset_root, require_prefix=self.cache_paths.cache_root(cache_dir))
        logger.info(f"Removed cached toolset at {toolset_root}")
        return True

    def toolset_root(self, platform_id: str, cache_dir: Optional[str] = None) -> Path:
        return self.cache_paths.toolset_root(
            platform_id, self.manifest.toolset_version, cache_dir
        )

    def installed_versions(
        self, platform_id: str, cache_dir: Optional[str] = None
    ) -> List[str]:
        """
        List cached toolset versions that completed provisioning.

        A version counts as installed when its directory holds a hash sidecar.
        """
        platform_root = self.cache_paths.cache_root(cache_dir) / platform_id
        if not platform_root.is_dir():
            return []

        return sorted(
            child.name
            for child in platform_root.iterdir()
            if child.is_dir() and (child / HASH_SIDECAR_NAME).is_file()
        )

    # ------------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------------

    def _provision_family(
        self,
        family: str,
        definition: ArchiveDefinition,
        toolset_root: Path,
        progress: Optional[ProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> None:
        with temporary_directory() as temp_dir:
            archive_path = temp_dir / _archive_file_name(family, definition)

            logger.info(f"Downloading {family} from {definition.archive_url}")

            def on_download(update: DownloadProgress) -> None:
                if progress:
                    progress(
                        ProvisionProgress(
                            tool_name=family,
                            stage=ProvisionStage.DOWNLOAD,
                            current_bytes=update.bytes_downloaded,
                            total_bytes=update.total_bytes,
                        )
                    )

            download_file(
                definition.archive_url,
                archive_path,
                progress_callback=on_download,
                cancel_event=cancel_event,
            )

            expected = parse_checksum(
                fetch_text(definition.checksum_url), definition.checksum_entry
            )
            actual = compute_sha256(archive_path)
            if not hashes_equal(actual, expected):
                raise IntegrityError(
                    f"Checksum mismatch for {family} archive: "
                    f"expected {expected}, got {actual}."
                )
            logger.debug(f"Verified {family} archive SHA256 {actual}")

            _check_cancelled(cancel_event)

            # From here on the toolset directory is modified.
            (toolset_root / HASH_SIDECAR_NAME).unlink(missing_ok=True)
            family_root = toolset_root / family
            if family_root.exists():
                safe_rmtree(family_root, require_prefix=toolset_root)
            family_root.mkdir(parents=True)

            try:
                with open_archive(archive_path, definition.archive_type) as archive:
                    _extract_declared_files(
                        family, definition, archive, family_root, progress, cancel_event
                    )
            except ArchiveFormatError as e:
                raise ArchiveFormatError(
                    f"Failed to extract {family} archive declared as "
                    f"{definition.archive_type}: {e}"
                ) from e


def _extract_declared_files(
    family: str,
    definition: ArchiveDefinition,
    archive: ArchiveReader,
    family_root: Path,
    progress: Optional[ProgressCallback],
    cancel_event: Optional[threading.Event],
) -> None:
    entries = [e for e in archive.list_entries() if not e.is_directory]
    total = len(definition.extract_map)

    for done, (file_key, relative_path) in enumerate(definition.extract_map.items(), 1):
        _check_cancelled(cancel_event)

        entry = find_entry_by_suffix(entries, relative_path)
        if entry is None:
            raise ExtractionError(family, file_key, relative_path)

        destination = ensure_within(
            family_root / normalize_archive_path(relative_path), family_root
        )
        archive.extract_entry(entry, destination)
        logger.debug(f"Extracted {entry.name} -> {destination}")

        if progress:
            progress(
                ProvisionProgress(
                    tool_name=family,
                    stage=ProvisionStage.EXTRACT,
                    files_done=done,
                    files_total=total,
                    current_item=file_key,
                )
            )


def find_entry_by_suffix(
    entries: List[ArchiveEntry], relative_path: str
) -> Optional[ArchiveEntry]:
    """
    Find the archive entry whose path ends with relative_path.

    Matching is case-insensitive and on whole path components, so
    'bin/ffmpeg.exe' matches 'ffmpeg-7.1-essentials/bin/ffmpeg.exe' but not
    'sbin/ffmpeg.exe'.
    """
    suffix = normalize_archive_path(relative_path).strip("/").lower()
    for entry in entries:
        name = normalize_archive_path(entry.name).lower()
        if name == suffix or name.endswith("/" + suffix):
            return entry
    return None


# ============================================================================
# Helpers
# ============================================================================


def build_tool_paths(base: Path, entry: Dict[str, ArchiveDefinition]) -> ToolPaths:
    """Build executable paths under a toolset directory from a platform entry."""
    resolved = {}
    for tool_name, (family, file_key) in TOOL_FILES.items():
        relative = entry[family].destination_for(file_key)
        resolved[tool_name] = base / family / PurePosixPath(
            normalize_archive_path(relative)
        )
    return ToolPaths(**resolved)


def is_cache_valid(paths: ToolPaths, toolset_root: Path) -> bool:
    """
    Check that every executable exists and matches the hash sidecar.
    """
    for _, tool_path in paths.items():
        if not tool_path.is_file():
            logger.debug(f"Cached tool missing: {tool_path}")
            return False

    sidecar = HashSidecar.load(toolset_root / HASH_SIDECAR_NAME)
    if sidecar is None:
        return False

    for _, tool_path in paths.items():
        expected = sidecar.hash_for(_relative_key(tool_path, toolset_root))
        if not expected:
            logger.debug(f"No recorded hash for {tool_path}")
            return False
        if not hashes_equal(compute_sha256(tool_path), expected):
            logger.warning(f"Cached tool failed hash check: {tool_path}")
            return False

    return True


def _ordered_families(entry: Dict[str, ArchiveDefinition]) -> List[tuple]:
    return [(family, entry[family]) for family in REQUIRED_FILES]


def _archive_file_name(family: str, definition: ArchiveDefinition) -> str:
    name = PurePosixPath(urlparse(definition.archive_url).path).name
    return name or f"{family}.{definition.archive_type.strip().lower()}"


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError("Tool provisioning cancelled.")


__all__ = [
    "BUNDLED_TOOLS_DIR",
    "HASH_SIDECAR_NAME",
    "HashSidecar",
    "ToolBundleManager",
    "build_tool_paths",
    "find_entry_by_suffix",
    "is_cache_valid",
]
