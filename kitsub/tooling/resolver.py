"""
Tool path resolution.

Each external tool is resolved independently with this priority:

1. Explicit override, if the file exists (a missing override is logged and skipped)
2. Bundled toolset, if bundled tools are preferred and present
3. Cached toolset, provisioned on demand, unless PATH is preferred
4. The bare tool name, left to PATH lookup when the process is launched

Bundled and cache lookups run at most once per resolve() call and are shared
by all tools, so a toolset is never downloaded once per tool.
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from kitsub.core.platform import PlatformDetector
from kitsub.tooling.bundle import ToolBundleManager
from kitsub.tooling.progress import ProgressCallback
from kitsub.tooling.resolution import (
    TOOL_NAMES,
    BundleResult,
    PathResolution,
    ResolveOptions,
    ToolOverrides,
    ToolResolution,
    ToolSource,
)

logger = logging.getLogger(__name__)


class ToolResolver:
    """
    Resolves external tool paths from overrides, bundles, the cache and PATH.

    Example:
        >>> resolver = ToolResolver(ToolBundleManager(manifest))
        >>> resolution = resolver.resolve(ToolOverrides(), ResolveOptions())
        >>> resolution.ffmpeg.source
        <ToolSource.CACHE: 'Cache'>
    """

    def __init__(
        self,
        bundle_manager: ToolBundleManager,
        detector: Optional[PlatformDetector] = None,
    ):
        self.bundle_manager = bundle_manager
        self.detector = detector or PlatformDetector()

    def resolve(
        self,
        overrides: ToolOverrides,
        options: ResolveOptions,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ToolResolution:
        """
        Resolve every tool path.

        Args:
            overrides: User-supplied tool paths
            options: Resolution preferences
            progress: Optional provisioning progress callback
            cancel_event: Optional event cancelling provisioning

        Returns:
            ToolResolution for all tools

        Raises:
            ProvisioningError, IntegrityError, OperationCancelledError: If
                on-demand provisioning fails
        """
        manifest = self.bundle_manager.manifest
        platform_id = self.detector.runtime_id()

        bundled: Optional[BundleResult] = None
        cached: Optional[BundleResult] = None

        if not self.detector.is_supported:
            logger.debug("Skipping bundled and cached toolsets on unsupported host")
        elif not manifest.has_platform(platform_id):
            logger.warning(
                f"Tool provisioning unavailable for {platform_id}; falling back to PATH."
            )
        else:
            if options.prefer_bundled:
                bundled = self.bundle_manager.try_get_bundled(platform_id)

            if bundled is None and not options.prefer_path:
                cached = self._lookup_cache(platform_id, options, progress, cancel_event)

        resolution = ToolResolution(
            platform_id=platform_id, toolset_version=manifest.toolset_version
        )
        for tool_name in TOOL_NAMES:
            resolved = self._resolve_tool(
                tool_name, overrides.get(tool_name), bundled, cached, options
            )
            resolution.tools[tool_name] = resolved

            level = logging.INFO if options.verbose else logging.DEBUG
            logger.log(level, f"Resolved {tool_name} => {resolved.path} ({resolved.source})")

        return resolution

    def _lookup_cache(
        self,
        platform_id: str,
        options: ResolveOptions,
        progress: Optional[ProgressCallback],
        cancel_event: Optional[threading.Event],
    ) -> Optional[BundleResult]:
        if not options.allow_provisioning:
            return self.bundle_manager.try_get_cached(platform_id, options.cache_dir)

        return self.bundle_manager.ensure_cached(
            platform_id,
            options,
            force=False,
            progress=progress,
            cancel_event=cancel_event,
        )

    def _resolve_tool(
        self,
        tool_name: str,
        override_path: Optional[str],
        bundled: Optional[BundleResult],
        cached: Optional[BundleResult],
        options: ResolveOptions,
    ) -> PathResolution:
        if override_path and override_path.strip():
            candidate = Path(override_path).expanduser().absolute()
            if candidate.is_file():
                return PathResolution(str(candidate), ToolSource.OVERRIDE)

            logger.warning(f"Override path for {tool_name} does not exist: {override_path}")

        if options.prefer_bundled and bundled is not None:
            return PathResolution(str(bundled.paths.get(tool_name)), ToolSource.BUNDLED)

        if not options.prefer_path and cached is not None:
            return PathResolution(str(cached.paths.get(tool_name)), ToolSource.CACHE)

        logger.debug(f"Falling back to PATH for {tool_name}")
        return PathResolution(tool_name, ToolSource.PATH)


__all__ = ["ToolResolver"]
