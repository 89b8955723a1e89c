"""
Tool provisioning and resolution.

This package loads the tools manifest, provisions versioned toolsets into the
per-user cache, and resolves the executable path of every external tool.
"""

from .bundle import HASH_SIDECAR_NAME, HashSidecar, ToolBundleManager
from .manifest import ArchiveDefinition, ManifestLoader, ToolsManifest
from .progress import ProgressCallback, ProvisionProgress, ProvisionStage
from .resolution import (
    BundleResult,
    PathResolution,
    ResolveOptions,
    ToolOverrides,
    ToolPaths,
    ToolResolution,
    ToolSource,
)
from .resolver import ToolResolver
from .startup import StartupCoordinator, StartupOptions

__all__ = [
    "HASH_SIDECAR_NAME",
    "HashSidecar",
    "ToolBundleManager",
    "ArchiveDefinition",
    "ManifestLoader",
    "ToolsManifest",
    "ProgressCallback",
    "ProvisionProgress",
    "ProvisionStage",
    "BundleResult",
    "PathResolution",
    "ResolveOptions",
    "ToolOverrides",
    "ToolPaths",
    "ToolResolution",
    "ToolSource",
    "ToolResolver",
    "StartupCoordinator",
    "StartupOptions",
]
