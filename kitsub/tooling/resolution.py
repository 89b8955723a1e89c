"""
Data model for tool resolution.

A resolved tool is a path plus the source it came from. The set of sources
is closed: an explicit override, a bundled toolset shipped with the
application, a provisioned cache toolset, or a bare name left to PATH lookup.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

TOOL_NAMES = ("ffmpeg", "ffprobe", "mkvmerge", "mkvpropedit")


class ToolSource(Enum):
    """Origin of a resolved tool path."""

    OVERRIDE = "Override"
    BUNDLED = "Bundled"
    CACHE = "Cache"
    PATH = "Path"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ToolPaths:
    """Executable locations for the supported external tools."""

    ffmpeg: Path
    ffprobe: Path
    mkvmerge: Path
    mkvpropedit: Path

    def get(self, tool_name: str) -> Path:
        if tool_name not in TOOL_NAMES:
            raise KeyError(f"Unknown tool: {tool_name}")
        return getattr(self, tool_name)

    def items(self) -> Iterator[Tuple[str, Path]]:
        for name in TOOL_NAMES:
            yield name, getattr(self, name)


@dataclass(frozen=True)
class ToolOverrides:
    """User-supplied tool paths. Overrides are advisory: missing files are skipped."""

    ffmpeg: Optional[str] = None
    ffprobe: Optional[str] = None
    mkvmerge: Optional[str] = None
    mkvpropedit: Optional[str] = None

    def get(self, tool_name: str) -> Optional[str]:
        return getattr(self, tool_name, None)


@dataclass(frozen=True)
class ResolveOptions:
    """
    Options controlling tool resolution and provisioning.

    Attributes:
        allow_provisioning: Whether missing cache toolsets may be downloaded
        prefer_bundled: Whether an application-bundled toolset is used first
        prefer_path: Whether to skip the cache and use PATH lookup
        cache_dir: Optional tools cache directory override
        dry_run: Report what provisioning would do without downloading
        verbose: Report the resolved source and path per tool
    """

    allow_provisioning: bool = True
    prefer_bundled: bool = True
    prefer_path: bool = False
    cache_dir: Optional[str] = None
    dry_run: bool = False
    verbose: bool = False

    def with_provisioning(self, allowed: bool) -> "ResolveOptions":
        return replace(self, allow_provisioning=allowed)


@dataclass(frozen=True)
class PathResolution:
    """A resolved tool path with its source."""

    path: str
    source: ToolSource


@dataclass
class BundleResult:
    """A located toolset directory and the executable paths inside it."""

    base_directory: Path
    source: ToolSource
    paths: ToolPaths
    dry_run: bool = False


@dataclass
class ToolResolution:
    """Resolved tool paths alongside the platform and toolset version."""

    platform_id: str
    toolset_version: str
    tools: Dict[str, PathResolution] = field(default_factory=dict)

    @property
    def ffmpeg(self) -> PathResolution:
        return self.tools["ffmpeg"]

    @property
    def ffprobe(self) -> PathResolution:
        return self.tools["ffprobe"]

    @property
    def mkvmerge(self) -> PathResolution:
        return self.tools["mkvmerge"]

    @property
    def mkvpropedit(self) -> PathResolution:
        return self.tools["mkvpropedit"]


__all__ = [
    "BundleResult",
    "PathResolution",
    "ResolveOptions",
    "TOOL_NAMES",
    "ToolOverrides",
    "ToolPaths",
    "ToolResolution",
    "ToolSource",
]
