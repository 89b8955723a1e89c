"""
Pytest configuration and shared fixtures for Kitsub tests.
"""

import logging

import pytest

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.toolsets import (
    mocked_responses,
    toolset_server,
    bundle_manager,
    windows_host,
    linux_host,
)
from tests.fixtures.directories import (
    isolated_home,
    cache_dir,
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def no_ci_environment(monkeypatch):
    """Keep CI detection from leaking in from the machine running the tests."""
    monkeypatch.delenv("CI", raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore root logger handlers replaced by CLI runs."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    yield

    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def tools_missing(monkeypatch):
    """Nothing is found on PATH."""
    monkeypatch.setattr("kitsub.tooling.startup.shutil.which", lambda name: None)


@pytest.fixture
def tools_on_path(monkeypatch):
    """Every tool is found on PATH."""
    monkeypatch.setattr(
        "kitsub.tooling.startup.shutil.which", lambda name: f"/usr/bin/{name}"
    )
