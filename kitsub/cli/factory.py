"""
Builds the tool provisioning objects used by CLI commands.

The manifest is loaded once here and shared by the bundle manager, resolver
and startup coordinator for the rest of the invocation.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from kitsub.cli.config import AppConfig
from kitsub.core.platform import PlatformDetector
from kitsub.tooling.bundle import ToolBundleManager
from kitsub.tooling.manifest import ManifestLoader, ToolsManifest
from kitsub.tooling.resolver import ToolResolver

logger = logging.getLogger(__name__)


@dataclass
class Tooling:
    """Provisioning objects for one CLI invocation."""

    manifest: ToolsManifest
    detector: PlatformDetector
    bundle_manager: ToolBundleManager
    resolver: ToolResolver


def create_tooling(config: AppConfig) -> Tooling:
    """
    Load the manifest and wire up the bundle manager and resolver.

    Raises:
        ConfigurationError: If the manifest is missing or invalid
    """
    manifest_path = Path(config.tools.manifest) if config.tools.manifest else None
    manifest = ManifestLoader(manifest_path).load()
    logger.debug(f"Loaded tools manifest, toolset {manifest.toolset_version}")

    detector = PlatformDetector()
    bundle_manager = ToolBundleManager(manifest)
    resolver = ToolResolver(bundle_manager, detector)
    return Tooling(
        manifest=manifest,
        detector=detector,
        bundle_manager=bundle_manager,
        resolver=resolver,
    )


__all__ = ["Tooling", "create_tooling"]
