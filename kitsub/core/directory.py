"""
Directory layout for Kitsub.

This module resolves the per-user locations Kitsub reads and writes and the
versioned cache layout used for provisioned tools.

Directory Structure:
    Data root (%LOCALAPPDATA%\\Kitsub, ~/Library/Application Support/Kitsub,
    or $XDG_DATA_HOME/kitsub):
        - tools/<platform>/<version>/ : Provisioned toolsets
        - state/startup.json          : Startup prompt throttling state

    Config root (%APPDATA%\\Kitsub, ~/Library/Application Support/Kitsub,
    or $XDG_CONFIG_HOME/kitsub):
        - config.yaml                 : User configuration
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from kitsub.core.exceptions import KitsubError

logger = logging.getLogger(__name__)

CACHE_DIR_ENV_VAR = "KITSUB_TOOLS_CACHE_DIR"


class DirectoryError(KitsubError):
    """Raised when a per-user directory cannot be determined."""

    pass


def get_app_base_dir() -> Path:
    """
    Get the directory the application is installed in.

    For frozen builds this is the directory holding the executable, so a
    portable ``tools/`` folder and manifest override can ship beside it.
    Otherwise it is the ``kitsub`` package directory.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent.parent


def get_user_data_dir() -> Path:
    """
    Get the platform-specific per-user data directory.

    Returns:
        Path: The data directory.
            - Windows: %LOCALAPPDATA%\\Kitsub
            - macOS: ~/Library/Application Support/Kitsub
            - Linux: $XDG_DATA_HOME/kitsub or ~/.local/share/kitsub

    Raises:
        DirectoryError: If LOCALAPPDATA is not set on Windows
    """
    if os.name == "nt":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if not local_app_data:
            raise DirectoryError(
                "LOCALAPPDATA environment variable is not set. "
                "Cannot determine data directory."
            )
        return Path(local_app_data) / "Kitsub"

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Kitsub"

    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home) / "kitsub"
    return Path.home() / ".local" / "share" / "kitsub"


def get_user_config_dir() -> Path:
    """Get the platform-specific per-user configuration directory."""
    if os.name == "nt":
        app_data = os.environ.get("APPDATA")
        if not app_data:
            raise DirectoryError(
                "APPDATA environment variable is not set. "
                "Cannot determine configuration directory."
            )
        return Path(app_data) / "Kitsub"

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Kitsub"

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "kitsub"
    return Path.home() / ".config" / "kitsub"


def get_startup_state_path() -> Path:
    """Get the path of the persisted startup prompt state."""
    return get_user_data_dir() / "state" / "startup.json"


class ToolCachePaths:
    """
    Builds cache paths for provisioned toolsets.

    The cache root is chosen with the precedence: explicit override argument,
    then the KITSUB_TOOLS_CACHE_DIR environment variable, then the per-user
    data directory.

    Example:
        >>> paths = ToolCachePaths()
        >>> paths.toolset_root("win-x64", "2024.09.15", None)
        PosixPath('/home/user/.local/share/kitsub/tools/win-x64/2024.09.15')
    """

    def cache_root(self, override: Optional[str] = None) -> Path:
        """
        Get the root cache directory, applying overrides when provided.

        Args:
            override: Explicit cache directory (highest precedence)

        Returns:
            Absolute path of the cache root
        """
        if override and override.strip():
            return Path(override).expanduser().absolute()

        env_override = os.environ.get(CACHE_DIR_ENV_VAR)
        if env_override and env_override.strip():
            return Path(env_override).expanduser().absolute()

        root = get_user_data_dir() / "tools"
        logger.debug(f"Using default tools cache root {root}")
        return root

    def toolset_root(
        self, platform_id: str, toolset_version: str, override: Optional[str] = None
    ) -> Path:
        """Get the cache directory for a specific platform and toolset version."""
        return self.cache_root(override) / platform_id / toolset_version


__all__ = [
    "CACHE_DIR_ENV_VAR",
    "DirectoryError",
    "ToolCachePaths",
    "get_app_base_dir",
    "get_startup_state_path",
    "get_user_config_dir",
    "get_user_data_dir",
]
