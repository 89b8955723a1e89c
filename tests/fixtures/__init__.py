"""Test fixtures for Kitsub tests.

This package provides reusable pytest fixtures for testing tool provisioning.
Fixtures are organized by type:

- toolsets: Upstream toolset archives, checksum files and manifests served
  through a mocked HTTP layer
- directories: Isolated per-user data, config and cache directories

Import fixtures in your tests using:
    from tests.fixtures.toolsets import toolset_server
    from tests.fixtures.directories import cache_dir
"""

__all__ = [
    "toolsets",
    "directories",
]
