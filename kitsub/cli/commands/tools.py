"""
Tools command implementation.

Shows where each external tool resolves to, provisions the toolset into the
cache, and deletes the cached toolset.
"""

import logging

from kitsub.cli import exit_codes
from kitsub.cli.config import AppConfig, build_overrides, build_resolve_options
from kitsub.cli.factory import Tooling
from kitsub.cli.progress import ConsoleProgressReporter
from kitsub.cli.utils import print_error, print_warning
from kitsub.tooling.resolution import ToolResolution

logger = logging.getLogger(__name__)


def run_status(args, config: AppConfig, tooling: Tooling) -> int:
    """
    Print the platform, toolset version and resolved path of every tool.

    Resolution never downloads here; a missing cache falls back to PATH.
    """
    options = build_resolve_options(args, config, allow_provisioning=False)
    resolution = tooling.resolver.resolve(build_overrides(args, config), options)

    print_resolution(resolution)
    return exit_codes.SUCCESS


def run_fetch(args, config: AppConfig, tooling: Tooling) -> int:
    """
    Provision the toolset into the cache, replacing any cached copy.

    Args:
        args: Parsed arguments
        config: Loaded configuration
        tooling: Provisioning objects

    Returns:
        Exit code (0 on success, 3 if the platform cannot be provisioned)
    """
    if args.no_provision:
        print_error("Refusing to fetch tools with --no-provision.")
        return exit_codes.VALIDATION_ERROR

    platform_id = tooling.detector.runtime_id()
    options = build_resolve_options(args, config, allow_provisioning=True)
    if not tooling.detector.is_supported:
        print_warning(
            f"Tools for {platform_id} will be cached but not used on this host."
        )

    reporter = ConsoleProgressReporter(args.progress)
    try:
        result = tooling.bundle_manager.ensure_cached(
            platform_id, options, force=True, progress=reporter
        )
    finally:
        reporter.finish()

    if result is None:
        print_error(f"Failed to provision tools for {platform_id}. Check logs for details.")
        return exit_codes.PROVISIONING_FAILURE

    if result.dry_run:
        print(f"Dry run: tools would be provisioned in {result.base_directory}")
    else:
        print(f"Tools provisioned in cache: {result.base_directory}")
    return exit_codes.SUCCESS


def run_clean(args, config: AppConfig, tooling: Tooling) -> int:
    """Delete the cached toolset. Requires --yes."""
    if not args.yes:
        print_error("Refusing to delete cache without --yes.")
        return exit_codes.VALIDATION_ERROR

    platform_id = tooling.detector.runtime_id()
    cache_dir = build_resolve_options(args, config).cache_dir

    if tooling.bundle_manager.clean(platform_id, cache_dir):
        print("Tools cache cleared.")
    else:
        print("Tools cache already empty.")
    return exit_codes.SUCCESS


def print_resolution(resolution: ToolResolution) -> None:
    """Print a resolution as an aligned table."""
    print(f"Platform: {resolution.platform_id}")
    print(f"Toolset version: {resolution.toolset_version}")
    print()

    rows = [("Tool", "Source", "Path")]
    rows.extend(
        (name, str(resolved.source), resolved.path)
        for name, resolved in resolution.tools.items()
    )
    name_width = max(len(row[0]) for row in rows)
    source_width = max(len(row[1]) for row in rows)
    for name, source, path in rows:
        print(f"  {name:<{name_width}}  {source:<{source_width}}  {path}")
