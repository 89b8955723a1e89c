"""
Doctor command for diagnosing configuration and tool issues.

This module checks the configuration file, the tools manifest and cache, and
whether the required external tools can be found.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging

from kitsub.cli import exit_codes
from kitsub.cli.commands.tools import print_resolution
from kitsub.cli.config import AppConfig, build_overrides, build_resolve_options
from kitsub.cli.factory import Tooling
from kitsub.tooling.resolution import ToolResolution
from kitsub.tooling.startup import find_executable

logger = logging.getLogger(__name__)

# Tools every Kitsub workflow needs.
REQUIRED_TOOLS = ("ffmpeg", "mkvmerge")


@dataclass
class CheckResult:
    """Result of a health check."""

    name: str
    passed: bool
    message: str
    fix_command: Optional[str] = None


class DoctorRunner:
    """Runs health checks against the configuration and resolved tools."""

    def __init__(
        self, config: AppConfig, tooling: Tooling, cache_dir: Optional[str] = None
    ):
        self.config = config
        self.tooling = tooling
        self.cache_dir = cache_dir

    def run_all_checks(self, resolution: ToolResolution) -> List[CheckResult]:
        results = [self.check_config(), self.check_cache()]
        for tool_name in REQUIRED_TOOLS:
            results.append(self.check_tool(tool_name, resolution))
        return results

    def check_config(self) -> CheckResult:
        """
        Check the configuration file.

        A missing file is fine (defaults apply); an invalid file fails before
        doctor runs at all.
        """
        if not self.config.found:
            return CheckResult(
                name="Config",
                passed=True,
                message=f"Not found, using defaults ({self.config.path})",
            )

        return CheckResult(
            name="Config", passed=True, message=f"Found and valid ({self.config.path})"
        )

    def check_cache(self) -> CheckResult:
        """Report the state of the tools cache for this platform."""
        detector = self.tooling.detector
        if not detector.is_supported:
            return CheckResult(
                name="Tools cache",
                passed=True,
                message="Provisioning not available on this host; using PATH",
            )

        platform_id = detector.runtime_id()
        cache_dir = self.cache_dir
        manager = self.tooling.bundle_manager

        if manager.try_get_cached(platform_id, cache_dir) is not None:
            return CheckResult(
                name="Tools cache",
                passed=True,
                message=f"Toolset {self.tooling.manifest.toolset_version} "
                f"at {manager.toolset_root(platform_id, cache_dir)}",
            )

        installed = manager.installed_versions(platform_id, cache_dir)
        if self.tooling.manifest.toolset_version in installed:
            message = "Cached toolset failed hash verification"
        elif installed:
            message = (
                f"Cached toolset {', '.join(installed)} differs from manifest "
                f"{self.tooling.manifest.toolset_version}"
            )
        else:
            message = "No valid cached toolset"

        return CheckResult(
            name="Tools cache",
            passed=False,
            message=message,
            fix_command="Run: kitsub tools fetch",
        )

    def check_tool(self, tool_name: str, resolution: ToolResolution) -> CheckResult:
        resolved = resolution.tools[tool_name]
        executable = find_executable(tool_name, resolved)
        if executable is None:
            return CheckResult(
                name=tool_name,
                passed=False,
                message=f"Not found ({resolved.source}: {resolved.path})",
                fix_command=f"Install {tool_name} or set tools.{tool_name} in "
                "config.yaml, or run: kitsub tools fetch",
            )

        return CheckResult(
            name=tool_name, passed=True, message=f"{executable} ({resolved.source})"
        )


def run(args, config: AppConfig, tooling: Tooling) -> int:
    """
    Run doctor command.

    Args:
        args: Parsed arguments from argparse
        config: Loaded configuration
        tooling: Provisioning objects

    Returns:
        Exit code (0 if required tools are available, 1 otherwise)
    """
    quiet = args.quiet

    if not quiet:
        print("Kitsub Doctor\n")
        logger.info("Starting diagnostics")

    options = build_resolve_options(args, config, allow_provisioning=False)
    resolution = tooling.resolver.resolve(build_overrides(args, config), options)
    if not quiet:
        print_resolution(resolution)
        print()

    runner = DoctorRunner(config, tooling, options.cache_dir)
    results = runner.run_all_checks(resolution)

    failed = 0
    warnings = 0
    fixes = []
    for result in results:
        if result.passed:
            if not quiet:
                print(f"[OK]   {result.name}: {result.message}")
            continue

        # A missing cache only matters when the tools cannot be found elsewhere
        if result.name == "Tools cache":
            warnings += 1
            if not quiet:
                print(f"[WARN] {result.name}: {result.message}")
            logger.debug(f"{result.name}: {result.message}")
        else:
            failed += 1
            print(f"[FAIL] {result.name}: {result.message}")
            logger.debug(f"{result.name}: {result.message}")

        if result.fix_command and result.fix_command not in fixes:
            fixes.append(result.fix_command)

    if fixes:
        print("\nNext steps:")
        for fix in fixes:
            print(f"  - {fix}")

    if not quiet:
        passed = len(results) - failed - warnings
        print(f"\nSummary: {passed} passed, {failed} failed, {warnings} warnings")

    if failed:
        return exit_codes.VALIDATION_ERROR
    return exit_codes.SUCCESS
