"""
Persisted startup state.

The startup coordinator records when it last checked for tool updates and
which installed toolset version it saw, so update prompts are throttled
across invocations. State is stored as JSON:

    {"lastCheckedUtc": "2024-09-15T10:00:00+00:00",
     "lastInstalledVersionSeen": "2024.09.15"}
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from kitsub.core.directory import get_startup_state_path
from kitsub.core.filesystem import atomic_write

logger = logging.getLogger(__name__)


@dataclass
class StartupState:
    """
    Startup prompt state.

    Attributes:
        last_checked_utc: When the update check last ran
        last_installed_version_seen: Installed toolset version seen at that check
    """

    last_checked_utc: Optional[datetime] = None
    last_installed_version_seen: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "lastCheckedUtc": (
                self.last_checked_utc.isoformat() if self.last_checked_utc else None
            ),
            "lastInstalledVersionSeen": self.last_installed_version_seen,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StartupState":
        checked = data.get("lastCheckedUtc")
        last_checked = None
        if checked:
            last_checked = datetime.fromisoformat(checked)
            if last_checked.tzinfo is None:
                last_checked = last_checked.replace(tzinfo=timezone.utc)

        return cls(
            last_checked_utc=last_checked,
            last_installed_version_seen=data.get("lastInstalledVersionSeen"),
        )


class StartupStateStore:
    """
    Stores and retrieves startup prompt state.

    Read and write failures are logged and never raised: losing the state only
    means the next invocation checks for updates again.
    """

    def __init__(self, state_path: Optional[Path] = None):
        self.state_path = Path(state_path) if state_path else get_startup_state_path()

    def load(self) -> StartupState:
        if not self.state_path.exists():
            return StartupState()

        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise TypeError("state document is not an object")
            return StartupState.from_dict(data)
        except (OSError, json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load startup state from {self.state_path}: {e}")
            return StartupState()

    def save(self, state: StartupState) -> None:
        try:
            atomic_write(self.state_path, json.dumps(state.to_dict(), indent=2))
            logger.debug(f"Saved startup state to {self.state_path}")
        except OSError as e:
            logger.warning(f"Failed to write startup state to {self.state_path}: {e}")


__all__ = ["StartupState", "StartupStateStore"]
