"""
app/domain package marker.
"""

from app.domain.errors import (
    IngestionError,
    InvalidPeriodFormat,
    MissingRequiredColumn,
    ParseTimeout,
    UnreadableFile,
)
from app.domain.metric_ingestion import (
    IngestionOutcome,
    MetricPointInput,
    ParsedSpreadsheet,
    SkippedRow,
    ValidationReport,
)
from app.domain.period import normalize_period, require_period

__all__ = [
    "IngestionError",
    "IngestionOutcome",
    "InvalidPeriodFormat",
    "MetricPointInput",
    "MissingRequiredColumn",
    "ParseTimeout",
    "ParsedSpreadsheet",
    "SkippedRow",
    "UnreadableFile",
    "ValidationReport",
    "normalize_period",
    "require_period",
]
