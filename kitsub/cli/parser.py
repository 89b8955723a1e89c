"""
Kitsub CLI argument parser.

This module implements the command-line interface for Kitsub tool
provisioning using argparse.
"""

import argparse
import importlib
import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional

import requests

from kitsub import __version__
from kitsub.cli import exit_codes
from kitsub.cli.config import (
    AppConfig,
    build_overrides,
    build_resolve_options,
    build_startup_options,
    load_app_config,
)
from kitsub.cli.factory import Tooling, create_tooling
from kitsub.cli.progress import PROGRESS_MODES, ConsoleProgressReporter
from kitsub.cli.utils import print_error
from kitsub.core.exceptions import KitsubError
from kitsub.tooling.startup import StartupCoordinator

logger = logging.getLogger(__name__)

# Commands that run the interactive startup checks first. The tools commands
# manage the toolset explicitly and skip them.
STARTUP_CHECK_COMMANDS = ("doctor",)


class CLI:
    """Kitsub command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="kitsub",
            description="Kitsub - subtitle tooling for ffmpeg and MKVToolNix",
            epilog='Use "kitsub COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"Kitsub {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: <user config dir>/config.yaml)",
        )

        self._add_tool_options(parser)

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_tools_command(subparsers)
        self._add_doctor_command(subparsers)

        return parser

    def _add_tool_options(self, parser):
        """Add tool resolution and provisioning options."""
        group = parser.add_argument_group("tool options")
        for tool_name in ("ffmpeg", "ffprobe", "mkvmerge", "mkvpropedit"):
            group.add_argument(
                f"--{tool_name}",
                metavar="PATH",
                help=f"Use this {tool_name} executable",
            )

        group.add_argument(
            "--prefer-bundled",
            dest="prefer_bundled",
            action="store_true",
            default=None,
            help="Prefer tools bundled with Kitsub (default)",
        )
        group.add_argument(
            "--no-prefer-bundled",
            dest="prefer_bundled",
            action="store_false",
            help="Ignore tools bundled with Kitsub",
        )
        group.add_argument(
            "--prefer-path",
            dest="prefer_path",
            action="store_true",
            default=None,
            help="Skip the tools cache and use tools from PATH",
        )
        group.add_argument(
            "--no-prefer-path",
            dest="prefer_path",
            action="store_false",
            help="Use the tools cache before PATH (default)",
        )
        group.add_argument(
            "--tools-cache-dir",
            metavar="DIR",
            help="Tools cache directory (default: $KITSUB_TOOLS_CACHE_DIR or per-user data dir)",
        )
        group.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be provisioned without downloading",
        )
        group.add_argument(
            "--progress",
            choices=PROGRESS_MODES,
            default="auto",
            metavar="MODE",
            help="Progress display (auto|on|off) [default: auto]",
        )
        group.add_argument(
            "--no-provision",
            action="store_true",
            help="Never download tools",
        )
        group.add_argument(
            "--no-startup-prompt",
            action="store_true",
            help="Skip startup tool checks and prompts",
        )
        group.add_argument(
            "--check-updates",
            action="store_true",
            help="Check for tool updates now, ignoring the check interval",
        )

    def _add_tools_command(self, subparsers):
        """Add 'tools' subcommand with sub-subcommands."""
        parser = self._tools_parser = subparsers.add_parser(
            "tools",
            help="Manage external tools",
            description="Show, provision and clean the external tools Kitsub uses",
        )

        tools_subparsers = parser.add_subparsers(
            dest="tools_command", help="Tool management commands", metavar="COMMAND"
        )

        # tools status
        tools_subparsers.add_parser(
            "status",
            help="Show resolved tool paths",
            description="Show where each tool resolves to and its source",
        )

        # tools fetch
        tools_subparsers.add_parser(
            "fetch",
            help="Download tools into the cache",
            description="Download, verify and extract the toolset, replacing any cached copy",
        )

        # tools clean
        clean_parser = tools_subparsers.add_parser(
            "clean",
            help="Delete cached tools",
            description="Delete the cached toolset for this platform",
        )
        clean_parser.add_argument(
            "--yes", action="store_true", help="Confirm deletion of the cache"
        )

    def _add_doctor_command(self, subparsers):
        """Add 'doctor' subcommand."""
        subparsers.add_parser(
            "doctor",
            help="Diagnose configuration and tools",
            description="Check configuration and tool availability and suggest fixes",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return exit_codes.VALIDATION_ERROR

        try:
            config = load_app_config(parsed_args.config)
            self._configure_logging(parsed_args, config)

            tooling = create_tooling(config)

            if parsed_args.command in STARTUP_CHECK_COMMANDS:
                self._run_startup_checks(parsed_args, config, tooling)

            return self._dispatch_command(parsed_args, config, tooling)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return exit_codes.INTERRUPTED
        except (KitsubError, requests.RequestException) as e:
            print_error(str(e))
            if parsed_args.verbose:
                traceback.print_exc()
            return exit_codes.exit_code_for(e)
        except Exception as e:
            logger.error(f"Unexpected error: {e}")
            if parsed_args.verbose:
                traceback.print_exc()
            return exit_codes.UNEXPECTED_ERROR

    def _configure_logging(self, args, config: Optional[AppConfig] = None):
        """
        Configure logging based on verbose/quiet flags and the config file.

        Flags take precedence over ``logging.level`` from the config file.

        Args:
            args: Parsed arguments with verbose/quiet flags
            config: Optional loaded configuration
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        elif config is not None and config.logging.level:
            level = getattr(logging, config.logging.level.upper())
            format_str = "%(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        handlers = [logging.StreamHandler()]
        if config is not None and config.logging.file:
            log_file = Path(config.logging.file).expanduser()
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
            )
            handlers.append(file_handler)

        logging.basicConfig(
            level=level,
            format=format_str,
            handlers=handlers,
            force=True,  # Reconfigure if already configured
        )

    def _run_startup_checks(self, args, config: AppConfig, tooling: Tooling):
        """Run the interactive baseline and update checks before a command."""
        reporter = ConsoleProgressReporter(args.progress)
        coordinator = StartupCoordinator(
            tooling.resolver, tooling.bundle_manager, progress=reporter
        )
        try:
            coordinator.run(
                build_overrides(args, config),
                build_resolve_options(args, config, allow_provisioning=False),
                build_startup_options(args, config),
            )
        finally:
            reporter.finish()

    def _dispatch_command(self, args, config: AppConfig, tooling: Tooling) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field
            config: Loaded configuration
            tooling: Provisioning objects for this invocation

        Returns:
            Exit code from command handler
        """
        if args.command == "tools":
            return self._dispatch_tools_command(args, config, tooling)

        # Command module mapping
        command_map = {
            "doctor": "kitsub.cli.commands.doctor",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return exit_codes.VALIDATION_ERROR

        module = importlib.import_module(module_name)
        return module.run(args, config, tooling)

    def _dispatch_tools_command(self, args, config: AppConfig, tooling: Tooling) -> int:
        """
        Dispatch tools sub-commands.

        Args:
            args: Parsed arguments with tools_command field

        Returns:
            Exit code from command handler
        """
        if not getattr(args, "tools_command", None):
            logger.error("No tools sub-command specified")
            self._tools_parser.print_help()
            return exit_codes.VALIDATION_ERROR

        from kitsub.cli.commands import tools

        tools_command_map = {
            "status": tools.run_status,
            "fetch": tools.run_fetch,
            "clean": tools.run_clean,
        }

        handler = tools_command_map.get(args.tools_command)
        if not handler:
            logger.error(f"Unknown tools command: {args.tools_command}")
            return exit_codes.VALIDATION_ERROR

        return handler(args, config, tooling)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
