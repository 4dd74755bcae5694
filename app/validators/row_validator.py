"""
app/validators/row_validator.py

Row-level validation and type parsing for spreadsheet ingestion.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence

from app.domain.metric_ingestion import MetricPointInput, SkippedRow
from app.domain.period import normalize_period

# Spreadsheet placeholders that mean "no value" rather than a parse error.
EMPTY_MARKERS = {"", "-", "–", "n/a", "na", "null", "none"}

# "1,234" and "1.234.567": digit groups of three after a thousands separator.
_COMMA_GROUPED_RE = re.compile(r"^[-+]?\d{1,3}(,\d{3})+$")
_DOT_GROUPED_RE = re.compile(r"^[-+]?\d{1,3}(\.\d{3}){2,}$")


class MetricRowValidator:
    """
    Validates and parses one mapped spreadsheet row into a metric point.
    """

    def is_completely_empty_row(self, row: Sequence[Any]) -> bool:
        """
        Return True when all cells in the row are empty or whitespace.
        """

        return all(self._is_blank(value) for value in row)

    def validate_row(
        self,
        *,
        mapped_row: Mapping[str, Any],
        row_number: int,
        metric: str,
        source: str,
        default_period: str | None = None,
        header_period: str | None = None,
    ) -> tuple[MetricPointInput | None, list[SkippedRow]]:
        """
        Validate one row.

        Returns the parsed point (None when the row must be skipped) and the
        row's issues. A non-numeric weight is reported but does not skip
        the row.
        """

        issues: list[SkippedRow] = []

        period = self._parse_period(
            value=mapped_row.get("period"),
            has_period_column="period" in mapped_row,
            default_period=default_period,
            header_period=header_period,
            row_number=row_number,
            issues=issues,
        )
        value = self._parse_value(
            value=mapped_row.get("value"),
            row_number=row_number,
            issues=issues,
        )
        if period is None or value is None:
            return None, issues

        weight = self._parse_weight(
            value=mapped_row.get("weight"),
            row_number=row_number,
            issues=issues,
        )

        return (
            MetricPointInput(
                period=period,
                metric=metric,
                source=source,
                value=value,
                weight=weight,
                group_a=self._parse_label(mapped_row.get("group_a")),
                group_b=self._parse_label(mapped_row.get("group_b")),
                group_c=self._parse_label(mapped_row.get("group_c")),
            ),
            issues,
        )

    def _parse_period(
        self,
        *,
        value: Any,
        has_period_column: bool,
        default_period: str | None,
        header_period: str | None,
        row_number: int,
        issues: list[SkippedRow],
    ) -> str | None:
        if not self._is_blank(value):
            period = normalize_period(value)
            if period is not None:
                return period
            if default_period is None and header_period is None:
                issues.append(
                    SkippedRow(
                        row_number=row_number,
                        column="period",
                        message="Unrecognized period; expected e.g. '2024 Q4'.",
                        value=self._stringify_value(value),
                    )
                )
                return None

        fallback = default_period or header_period
        if fallback is None:
            issues.append(
                SkippedRow(
                    row_number=row_number,
                    column="period",
                    message="Period is missing." if has_period_column else "No period column and no default period.",
                )
            )
        return fallback

    def _parse_value(
        self,
        *,
        value: Any,
        row_number: int,
        issues: list[SkippedRow],
    ) -> float | None:
        if self._is_blank(value):
            issues.append(
                SkippedRow(
                    row_number=row_number,
                    column="value",
                    message="Empty value cell.",
                )
            )
            return None

        parsed = self._to_number(value)
        if parsed is None:
            issues.append(
                SkippedRow(
                    row_number=row_number,
                    column="value",
                    message="Value is not numeric.",
                    value=self._stringify_value(value),
                )
            )
        return parsed

    def _parse_weight(
        self,
        *,
        value: Any,
        row_number: int,
        issues: list[SkippedRow],
    ) -> float | None:
        if self._is_blank(value) or self._is_empty_marker(value):
            return None

        parsed = self._to_number(value)
        if parsed is None:
            issues.append(
                SkippedRow(
                    row_number=row_number,
                    column="weight",
                    message="Weight is not numeric and was dropped.",
                    value=self._stringify_value(value),
                )
            )
        return parsed

    @staticmethod
    def _parse_label(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        text = str(value).strip()
        return text or None

    @staticmethod
    def _to_number(value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float, Decimal)):
            number = float(value)
            return number if math.isfinite(number) else None

        raw = str(value).strip().replace(" ", "").replace(" ", "")
        if raw.endswith("%"):
            raw = raw[:-1]
        raw = _normalize_separators(raw)
        try:
            number = float(Decimal(raw))
        except (InvalidOperation, ValueError):
            return None
        return number if math.isfinite(number) else None

    @staticmethod
    def _is_empty_marker(value: Any) -> bool:
        return str(value).strip().lower() in EMPTY_MARKERS

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""

    @staticmethod
    def _stringify_value(value: Any) -> str | None:
        if value is None:
            return None
        return str(value)


def _normalize_separators(raw: str) -> str:
    """
    Rewrite a number to use "." as decimal point and no grouping.

    With both separators present the last one is the decimal point
    ("1,234.5", "1.234,5"). A lone comma is a decimal comma ("62,5")
    unless it groups thousands ("1,234").
    """

    if "," in raw and "." in raw:
        if raw.rfind(",") > raw.rfind("."):
            return raw.replace(".", "").replace(",", ".")
        return raw.replace(",", "")
    if "," in raw:
        if _COMMA_GROUPED_RE.match(raw):
            return raw.replace(",", "")
        return raw.replace(",", ".")
    if _DOT_GROUPED_RE.match(raw):
        return raw.replace(".", "")
    return raw
