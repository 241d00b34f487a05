"""Domain layer - core business logic."""

from .models import (
    BatchResult,
    Candidate,
    ExtractedRecord,
    FileRejection,
    RecordStatus,
    ScanLimits,
    StrategyId,
    TaxBounds,
)

__all__ = [
    "BatchResult",
    "Candidate",
    "ExtractedRecord",
    "FileRejection",
    "RecordStatus",
    "ScanLimits",
    "StrategyId",
    "TaxBounds",
]
