"""
Unit tests for directory layout.
"""

import os
import sys
from pathlib import Path

import pytest

from kitsub.core.directory import (
    CACHE_DIR_ENV_VAR,
    ToolCachePaths,
    get_app_base_dir,
    get_user_config_dir,
    get_user_data_dir,
)

posix_only = pytest.mark.skipif(
    os.name == "nt" or sys.platform == "darwin", reason="XDG layout applies on Linux"
)


class TestUserDirectories:
    """Test per-user directory discovery."""

    @posix_only
    def test_xdg_data_home(self, isolated_home):
        """Test XDG_DATA_HOME is honored."""
        assert get_user_data_dir() == isolated_home / ".local" / "share" / "kitsub"

    @posix_only
    def test_xdg_config_home(self, isolated_home):
        """Test XDG_CONFIG_HOME is honored."""
        assert get_user_config_dir() == isolated_home / ".config" / "kitsub"

    @posix_only
    def test_default_data_dir(self, isolated_home, monkeypatch):
        """Test the fallback when XDG_DATA_HOME is unset."""
        monkeypatch.delenv("XDG_DATA_HOME")
        assert get_user_data_dir() == Path.home() / ".local" / "share" / "kitsub"

    def test_app_base_dir_is_package(self):
        """Test the base directory is the kitsub package when not frozen."""
        assert (get_app_base_dir() / "data" / "tools-manifest.json").exists()


class TestToolCachePaths:
    """Test cache root precedence and layout."""

    def test_explicit_override_wins(self, cache_dir, tmp_path):
        """Test an explicit directory beats the environment variable."""
        explicit = tmp_path / "explicit"
        assert ToolCachePaths().cache_root(str(explicit)) == explicit.absolute()

    def test_environment_override(self, cache_dir):
        """Test the environment variable beats the default."""
        assert ToolCachePaths().cache_root() == cache_dir

    def test_blank_override_ignored(self, cache_dir):
        """Test whitespace-only overrides are ignored."""
        assert ToolCachePaths().cache_root("   ") == cache_dir

    def test_default_root(self, isolated_home):
        """Test the default root is tools/ under the data directory."""
        assert ToolCachePaths().cache_root() == get_user_data_dir() / "tools"

    def test_toolset_root_layout(self, cache_dir):
        """Test toolsets are keyed by platform then version."""
        root = ToolCachePaths().toolset_root("win-x64", "2024.09.15")
        assert root == cache_dir / "win-x64" / "2024.09.15"

    def test_env_var_name(self):
        """Test the documented environment variable name."""
        assert CACHE_DIR_ENV_VAR == "KITSUB_TOOLS_CACHE_DIR"
