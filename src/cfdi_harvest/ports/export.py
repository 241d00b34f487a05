"""Export port - interface for writing batch results."""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import BatchResult


class ExportPort(ABC):
    """Interface for batch result export."""

    suffix: str = ""

    @abstractmethod
    def export(
        self, batch: "BatchResult", directory: Path, now: datetime | None = None
    ) -> Path:
        """Write the batch to a timestamped file in directory.

        Returns path to the written file.
        """
        pass
