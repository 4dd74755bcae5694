"""
app/services/spreadsheet_ingestor.py

Turns raw spreadsheet bytes into validated metric points plus a
validation report. Pure with respect to storage: nothing here touches
the database.

Two sheet shapes are understood:

    long  one row per observation, with value (and usually period) columns
    wide  one row per label, one column per quarter ("2024 Q1", "Q2 2024")

File-level problems raise :class:`app.domain.errors.IngestionError`
subclasses; row-level problems become report warnings.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Mapping, Sequence

from app.domain.metric_ingestion import MetricPointInput, ParsedSpreadsheet, SkippedRow, ValidationReport
from app.domain.period import require_period
from app.mappers.column_mapper import (
    DEFAULT_COLUMN_ALIASES,
    GROUP_FIELDS,
    ColumnMapping,
    is_total_label,
    map_row,
    resolve_column_mapping,
)
from app.services.metric_calculations import mean
from app.services.spreadsheet_reader import SheetData, read_spreadsheet
from app.validators.row_validator import MetricRowValidator
from db.models.metric_point import MetricKey, MetricSource

logger = logging.getLogger(__name__)


class SpreadsheetIngestor:
    """
    Coordinates reading, column mapping, and row validation.
    """

    def __init__(
        self,
        *,
        max_warnings: int = 200,
        log_row_warnings: bool = True,
        aliases: Mapping[str, Sequence[str]] | None = None,
        validator: MetricRowValidator | None = None,
    ) -> None:
        self._max_warnings = max(1, max_warnings)
        self._log_row_warnings = log_row_warnings
        self._aliases = aliases or DEFAULT_COLUMN_ALIASES
        self._validator = validator or MetricRowValidator()

    def parse(
        self,
        file_bytes: bytes,
        file_id: uuid.UUID,
        kind: MetricSource | str,
        *,
        file_name: str | None = None,
        default_period: str | None = None,
        metric: MetricKey | str = MetricKey.NDI,
    ) -> ParsedSpreadsheet:
        """
        Parse one uploaded spreadsheet.

        Raises ``UnreadableFile``, ``MissingRequiredColumn`` or
        ``InvalidPeriodFormat`` (for a bad ``default_period``).
        """

        source = MetricSource(kind).value
        metric_key = MetricKey(metric).value
        fallback_period = require_period(default_period) if default_period else None

        sheet = read_spreadsheet(file_bytes, file_name=file_name)
        mapping = resolve_column_mapping(sheet.headers, aliases=self._aliases)

        report = ValidationReport(file_id=file_id, column_mapping=mapping.as_report_mapping())
        suppressed = 0
        for warning in mapping.warnings:
            suppressed += self._add_warning(report, warning)

        if not mapping.is_wide and "period" not in mapping.field_to_index:
            if fallback_period is None and mapping.header_period is None:
                suppressed += self._add_warning(
                    report,
                    "No period column detected and no default period given; rows cannot be dated.",
                )

        rows = self._iter_observations(sheet=sheet, mapping=mapping)
        points: list[MetricPointInput] = []
        for row_number, mapped_row in rows:
            report.row_count += 1
            if source == MetricSource.AGGREGATED.value:
                mapped_row = self._blank_total_labels(mapped_row)
            point, issues = self._validator.validate_row(
                mapped_row=mapped_row,
                row_number=row_number,
                metric=metric_key,
                source=source,
                default_period=fallback_period,
                header_period=mapping.header_period,
            )
            for issue in issues:
                suppressed += self._record_issue(report, issue, file_id=file_id)
            if point is None:
                report.ignored_rows += 1
                continue
            report.record_period(point.period)
            points.append(point)

        if source == MetricSource.AGGREGATED.value:
            points, dropped = self._collapse_period_totals(points, report)
            suppressed += dropped

        if len(report.detected_periods) > 1:
            suppressed += self._add_warning(
                report,
                f"Mixed periods in a single file: {', '.join(report.detected_periods)}.",
            )
        if not points:
            suppressed += self._add_warning(report, "No valid rows found.")
        if suppressed:
            report.warnings.append(f"{suppressed} further warnings were suppressed.")

        logger.info(
            "Parsed spreadsheet file_id=%s kind=%s format=%s rows=%d valid=%d ignored=%d periods=%s",
            file_id,
            source,
            "wide" if mapping.is_wide else "long",
            report.row_count,
            len(points),
            report.ignored_rows,
            ",".join(report.detected_periods) or "-",
        )
        return ParsedSpreadsheet(metric_points=points, validation_report=report)

    def _iter_observations(self, *, sheet: SheetData, mapping: ColumnMapping):
        """
        Yield ``(row_number, mapped_row)`` per observation, skipping
        completely empty rows. Wide sheets yield one observation per
        label row and quarter column.
        """

        for offset, row in enumerate(sheet.rows, start=1):
            if self._validator.is_completely_empty_row(row):
                continue
            row_number = sheet.header_row_number + offset
            mapped_row = map_row(row, mapping)
            if not mapping.is_wide:
                yield row_number, mapped_row
                continue

            labels = {field: mapped_row.get(field) for field in (*GROUP_FIELDS, "weight") if field in mapped_row}
            for column in mapping.quarter_columns:
                yield row_number, {
                    **labels,
                    "period": column.period,
                    "value": row[column.index] if column.index < len(row) else None,
                }

    def _blank_total_labels(self, mapped_row: dict[str, Any]) -> dict[str, Any]:
        """
        An aggregated row labelled with the metric name ("NDI", "NDI total")
        is the period total and is stored without group dimensions.
        """

        labels = [mapped_row.get(field) for field in GROUP_FIELDS]
        present = [label for label in labels if label is not None and str(label).strip()]
        if len(present) == 1 and is_total_label(present[0], self._aliases):
            return {**mapped_row, **{field: None for field in GROUP_FIELDS}}
        return mapped_row

    def _collapse_period_totals(
        self,
        points: list[MetricPointInput],
        report: ValidationReport,
    ) -> tuple[list[MetricPointInput], int]:
        """
        Keep one total row per period: several ("Index", "Index") are
        replaced by their mean at the position of the first.
        """

        totals: dict[str, list[MetricPointInput]] = {}
        for point in points:
            if point.group_key == "||":
                totals.setdefault(point.period, []).append(point)
        duplicated = {period: rows for period, rows in totals.items() if len(rows) > 1}
        if not duplicated:
            return points, 0

        suppressed = 0
        collapsed: list[MetricPointInput] = []
        for point in points:
            rows = duplicated.get(point.period) if point.group_key == "||" else None
            if rows is None:
                collapsed.append(point)
                continue
            if point is not rows[0]:
                continue
            weights = [row.weight for row in rows]
            collapsed.append(
                replace(
                    point,
                    value=mean([row.value for row in rows]),
                    weight=sum(weights) if all(w is not None for w in weights) else None,
                )
            )
            suppressed += self._add_warning(
                report,
                f"{len(rows)} total rows for {point.period}; stored their mean.",
            )
        return collapsed, suppressed

    def _record_issue(self, report: ValidationReport, issue: SkippedRow, *, file_id: uuid.UUID) -> int:
        if self._log_row_warnings:
            logger.warning("Spreadsheet row issue file_id=%s %s", file_id, issue.as_warning())
        return self._add_warning(report, issue.as_warning())

    def _add_warning(self, report: ValidationReport, message: str) -> int:
        """
        Append a warning unless the cap is reached; returns 1 when dropped.
        """

        if len(report.warnings) >= self._max_warnings:
            return 1
        report.warnings.append(message)
        return 0
