"""
app/domain/errors.py

File-level ingestion failures. Any of these aborts the whole ingestion
and nothing is written to the metric store.

Row-level problems never raise; they are collected as
:class:`app.domain.metric_ingestion.SkippedRow` records instead.
"""

from __future__ import annotations

from collections.abc import Sequence


class IngestionError(Exception):
    """
    Base class for abort-and-report ingestion failures.
    """

    code = "ingestion_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidPeriodFormat(IngestionError, ValueError):
    """
    Raised when a period identifier has no 4-digit year or no quarter 1-4.
    """

    code = "invalid_period_format"

    def __init__(self, raw: object) -> None:
        super().__init__(f"Invalid period format: {raw!r}. Expected e.g. '2024Q4'.")
        self.raw = raw


class MissingRequiredColumn(IngestionError):
    """
    Raised when a required logical field cannot be mapped to any header.
    """

    code = "missing_required_column"

    def __init__(self, field: str, available_headers: Sequence[str] = ()) -> None:
        headers = ", ".join(h for h in available_headers if h) or "none"
        super().__init__(
            f"Required column '{field}' could not be mapped. Available columns: {headers}."
        )
        self.field = field
        self.available_headers = tuple(available_headers)


class UnreadableFile(IngestionError):
    """
    Raised when the uploaded bytes cannot be loaded as a spreadsheet.
    """

    code = "unreadable_file"


class ParseTimeout(IngestionError):
    """
    Raised when parsing does not finish within the wall-clock budget.
    """

    code = "parse_timeout"

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"Spreadsheet parsing exceeded the {timeout_seconds:g}s budget and was abandoned."
        )
        self.timeout_seconds = timeout_seconds
