"""
Unit tests for persisted startup state.
"""

import json
from datetime import datetime, timezone

from kitsub.core.state import StartupState, StartupStateStore


class TestStartupState:
    """Test StartupState serialization."""

    def test_round_trip_fields(self):
        """Test to_dict/from_dict preserve the timestamp and version."""
        checked = datetime(2024, 9, 15, 10, 0, tzinfo=timezone.utc)
        state = StartupState(checked, "2024.09.15")

        data = state.to_dict()
        assert data == {
            "lastCheckedUtc": "2024-09-15T10:00:00+00:00",
            "lastInstalledVersionSeen": "2024.09.15",
        }
        assert StartupState.from_dict(data) == state

    def test_naive_timestamp_is_utc(self):
        """Test a timestamp without offset is read as UTC."""
        state = StartupState.from_dict({"lastCheckedUtc": "2024-09-15T10:00:00"})
        assert state.last_checked_utc.tzinfo == timezone.utc

    def test_empty_document(self):
        """Test missing keys produce an empty state."""
        state = StartupState.from_dict({})
        assert state.last_checked_utc is None
        assert state.last_installed_version_seen is None


class TestStartupStateStore:
    """Test StartupStateStore persistence."""

    def test_missing_file(self, tmp_path):
        """Test a missing file loads as empty state."""
        store = StartupStateStore(tmp_path / "state" / "startup.json")
        assert store.load() == StartupState()

    def test_save_and_load(self, tmp_path):
        """Test saved state is loaded back."""
        path = tmp_path / "state" / "startup.json"
        store = StartupStateStore(path)
        state = StartupState(datetime(2024, 9, 15, tzinfo=timezone.utc), "2024.09.15")

        store.save(state)

        assert json.loads(path.read_text())["lastInstalledVersionSeen"] == "2024.09.15"
        assert store.load() == state

    def test_corrupt_file(self, tmp_path):
        """Test a corrupt file loads as empty state without raising."""
        path = tmp_path / "startup.json"
        path.write_text("{not json")

        assert StartupStateStore(path).load() == StartupState()

    def test_non_object_document(self, tmp_path):
        """Test a JSON document that is not an object is ignored."""
        path = tmp_path / "startup.json"
        path.write_text("[]")

        assert StartupStateStore(path).load() == StartupState()

    def test_bad_timestamp(self, tmp_path):
        """Test an unparseable timestamp is ignored."""
        path = tmp_path / "startup.json"
        path.write_text('{"lastCheckedUtc": "yesterday"}')

        assert StartupStateStore(path).load() == StartupState()

    def test_default_path(self, isolated_home):
        """Test the default path lives under the per-user data directory."""
        store = StartupStateStore()
        assert store.state_path.parts[-2:] == ("state", "startup.json")
        assert str(isolated_home) in str(store.state_path)
