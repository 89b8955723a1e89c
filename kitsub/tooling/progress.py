"""Progress updates emitted during tool provisioning."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class ProvisionStage(Enum):
    """Provisioning stage being reported."""

    DOWNLOAD = "download"
    EXTRACT = "extract"


@dataclass
class ProvisionProgress:
    """
    Download or extraction progress for one tool family.

    Download updates fill the byte counters; extraction updates fill the
    file counters.
    """

    tool_name: str
    stage: ProvisionStage
    current_bytes: int = 0
    total_bytes: Optional[int] = None
    files_done: int = 0
    files_total: Optional[int] = None
    current_item: Optional[str] = None

    @property
    def percentage(self) -> Optional[float]:
        """Completion percentage, or None when the total is unknown."""
        if self.stage is ProvisionStage.DOWNLOAD:
            if not self.total_bytes:
                return None
            return min(self.current_bytes / self.total_bytes * 100, 100.0)

        if not self.files_total:
            return None
        return min(self.files_done / self.files_total * 100, 100.0)


ProgressCallback = Callable[[ProvisionProgress], None]

__all__ = ["ProgressCallback", "ProvisionProgress", "ProvisionStage"]
