"""
Startup tool checks.

Before a command runs in an interactive terminal, Kitsub checks that the
baseline tools (mkvmerge and ffprobe) can be found and offers to download
them if not. It then offers toolset updates when the cached toolset version
differs from the manifest, at most once per check interval.
"""

import logging
import os
import shutil
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

import requests

from kitsub.core.exceptions import KitsubError
from kitsub.core.state import StartupState, StartupStateStore
from kitsub.tooling.bundle import ToolBundleManager
from kitsub.tooling.progress import ProgressCallback
from kitsub.tooling.resolution import (
    PathResolution,
    ResolveOptions,
    ToolOverrides,
    ToolSource,
)
from kitsub.tooling.resolver import ToolResolver

logger = logging.getLogger(__name__)

BASELINE_TOOLS = ("mkvmerge", "ffprobe")
DEFAULT_CHECK_INTERVAL_HOURS = 24


@dataclass
class StartupOptions:
    """
    Options controlling startup prompts.

    Attributes:
        startup_prompt_enabled: Config switch for all startup prompts
        auto_update: Config switch for update checks
        update_prompt_on_startup: Config switch for the update prompt
        check_interval_hours: Minimum hours between update checks
        force_update_check: Ignore the check interval
        no_provision: Never offer downloads
        no_startup_prompt: Command-line switch disabling startup prompts
        is_help_invocation: Kitsub was run only to show help
    """

    startup_prompt_enabled: bool = True
    auto_update: bool = False
    update_prompt_on_startup: bool = True
    check_interval_hours: int = DEFAULT_CHECK_INTERVAL_HOURS
    force_update_check: bool = False
    no_provision: bool = False
    no_startup_prompt: bool = False
    is_help_invocation: bool = False


def is_ci_environment() -> bool:
    """Whether the CI environment variable is set to something other than false/0."""
    value = os.environ.get("CI", "").strip()
    return bool(value) and value.lower() not in ("false", "0")


def is_interactive_session() -> bool:
    """Whether stdin, stdout and stderr are terminals outside CI."""
    if is_ci_environment():
        return False

    for stream in (sys.stdin, sys.stdout, sys.stderr):
        if stream is None or not stream.isatty():
            return False
    return True


def confirm_prompt(message: str) -> bool:
    """Ask a yes/no question on the terminal. Defaults to no."""
    try:
        answer = input(f"{message} [y/N] ")
    except (EOFError, KeyboardInterrupt):
        print()
        return False
    return answer.strip().lower() in ("y", "yes")


class StartupCoordinator:
    """
    Runs the interactive baseline and update checks once per invocation.

    Args:
        resolver: Tool resolver
        bundle_manager: Bundle manager used for provisioning
        state_store: Persisted check state (default: per-user state file)
        confirm: Yes/no prompt, returns True when accepted
        interactive: Returns whether prompting is possible
        clock: Returns the current UTC time
        progress: Optional provisioning progress callback
    """

    def __init__(
        self,
        resolver: ToolResolver,
        bundle_manager: ToolBundleManager,
        state_store: Optional[StartupStateStore] = None,
        confirm: Callable[[str], bool] = confirm_prompt,
        interactive: Callable[[], bool] = is_interactive_session,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        progress: Optional[ProgressCallback] = None,
    ):
        self.resolver = resolver
        self.bundle_manager = bundle_manager
        self.state_store = state_store or StartupStateStore()
        self.confirm = confirm
        self.interactive = interactive
        self.clock = clock
        self.progress = progress

    def run(
        self,
        overrides: ToolOverrides,
        resolve_options: ResolveOptions,
        startup_options: StartupOptions,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Run the startup checks. Never raises for provisioning failures.
        """
        if (
            startup_options.is_help_invocation
            or startup_options.no_startup_prompt
            or not startup_options.startup_prompt_enabled
        ):
            return

        if startup_options.no_provision or not self.interactive():
            return

        detector = self.resolver.detector
        if not detector.is_supported:
            return

        platform_id = detector.runtime_id()
        manifest = self.bundle_manager.manifest
        if not manifest.has_platform(platform_id):
            return

        if not self._check_baseline(overrides, resolve_options, platform_id, cancel_event):
            return

        if not startup_options.auto_update or not startup_options.update_prompt_on_startup:
            return

        self._check_updates(resolve_options, startup_options, platform_id, cancel_event)

    def _check_baseline(
        self,
        overrides: ToolOverrides,
        resolve_options: ResolveOptions,
        platform_id: str,
        cancel_event: Optional[threading.Event],
    ) -> bool:
        resolution = self.resolver.resolve(
            overrides, resolve_options.with_provisioning(False)
        )
        missing = [
            name
            for name in BASELINE_TOOLS
            if find_executable(name, resolution.tools[name]) is None
        ]
        if not missing:
            return True

        print(f"Required tools not found ({', '.join(BASELINE_TOOLS)}).")
        if not self.confirm("Download required tools now?"):
            return False

        return self._provision(platform_id, resolve_options, False, cancel_event)

    def _check_updates(
        self,
        resolve_options: ResolveOptions,
        startup_options: StartupOptions,
        platform_id: str,
        cancel_event: Optional[threading.Event],
    ) -> None:
        now = self.clock()
        state = self.state_store.load()

        hours = startup_options.check_interval_hours
        if hours is None or hours < 1:
            hours = DEFAULT_CHECK_INTERVAL_HOURS
        interval = timedelta(hours=hours)

        if (
            not startup_options.force_update_check
            and state.last_checked_utc is not None
            and now - state.last_checked_utc < interval
        ):
            logger.debug(f"Skipping tool update check; last checked {state.last_checked_utc}")
            return

        installed = self._installed_version(platform_id, resolve_options.cache_dir)
        state = StartupState(last_checked_utc=now, last_installed_version_seen=installed)
        self.state_store.save(state)

        if not installed:
            return

        manifest_version = self.bundle_manager.manifest.toolset_version
        if installed.lower() == manifest_version.lower():
            return

        prompt = f"Tool updates available ({installed} → {manifest_version}). Download now?"
        if not self.confirm(prompt):
            return

        if self._provision(platform_id, resolve_options, True, cancel_event):
            state.last_installed_version_seen = manifest_version
            self.state_store.save(state)

    def _installed_version(
        self, platform_id: str, cache_dir: Optional[str]
    ) -> Optional[str]:
        try:
            versions = self.bundle_manager.installed_versions(platform_id, cache_dir)
        except OSError as e:
            logger.warning(f"Failed to detect installed toolset version: {e}")
            return None

        if len(versions) != 1:
            if versions:
                logger.debug(
                    f"Installed toolset version unknown; found {', '.join(versions)}"
                )
            return None
        return versions[0]

    def _provision(
        self,
        platform_id: str,
        resolve_options: ResolveOptions,
        force: bool,
        cancel_event: Optional[threading.Event],
    ) -> bool:
        print("Provisioning tools...")
        try:
            result = self.bundle_manager.ensure_cached(
                platform_id,
                resolve_options.with_provisioning(True),
                force=force,
                progress=self.progress,
                cancel_event=cancel_event,
            )
        except (KitsubError, requests.RequestException, OSError) as e:
            logger.error(f"Failed to provision tools at startup: {e}")
            print("Failed to provision tools. Check logs for details.")
            return False

        if result is None:
            print("Failed to provision tools. Check logs for details.")
            return False

        print("Tools provisioned.")
        return True


def find_executable(tool_name: str, resolution: PathResolution) -> Optional[str]:
    """
    Check that a resolved tool can actually be run.

    PATH resolutions are looked up on PATH; all others must exist on disk.
    """
    if resolution.source is ToolSource.PATH:
        return shutil.which(tool_name)

    return resolution.path if Path(resolution.path).is_file() else None


__all__ = [
    "BASELINE_TOOLS",
    "DEFAULT_CHECK_INTERVAL_HOURS",
    "StartupCoordinator",
    "StartupOptions",
    "confirm_prompt",
    "find_executable",
    "is_ci_environment",
    "is_interactive_session",
]
