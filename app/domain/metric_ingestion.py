"""
app/domain/metric_ingestion.py

Domain models used by the spreadsheet ingestion flow.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


@dataclass(frozen=True)
class MetricPointInput:
    """
    One validated metric point prepared for persistence.
    """

    period: str
    metric: str
    source: str
    value: float
    weight: float | None = None
    group_a: str | None = None
    group_b: str | None = None
    group_c: str | None = None

    @property
    def group_key(self) -> str:
        return "|".join(part or "" for part in (self.group_a, self.group_b, self.group_c))


@dataclass(frozen=True)
class SkippedRow:
    """
    One spreadsheet row that was dropped, or kept with a dropped cell.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None

    def as_warning(self) -> str:
        detail = f"Row {self.row_number}"
        if self.column:
            detail += f" ({self.column})"
        detail += f": {self.message}"
        if self.value is not None:
            detail += f" Got {self.value!r}."
        return detail


@dataclass
class ValidationReport:
    """
    Ephemeral per-upload report returned to the caller, never persisted.
    """

    file_id: uuid.UUID
    detected_periods: list[str] = field(default_factory=list)
    row_count: int = 0
    ignored_rows: int = 0
    column_mapping: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def record_period(self, period: str) -> None:
        if period not in self.detected_periods:
            self.detected_periods.append(period)


@dataclass(frozen=True)
class ParsedSpreadsheet:
    """
    Parse result: valid metric points plus the validation report.
    """

    metric_points: list[MetricPointInput]
    validation_report: ValidationReport

    @property
    def valid_count(self) -> int:
        return len(self.metric_points)


@dataclass(frozen=True)
class IngestionOutcome:
    """
    End-of-run ingestion summary.
    """

    file_id: uuid.UUID
    metric_points_count: int
    deleted_rows: int
    validation_report: ValidationReport
