"""
tests/test_period.py

Pytest unit tests for quarter period normalization and arithmetic.

Pure functions only; no database, no I/O.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from app.domain.errors import InvalidPeriodFormat
from app.domain.period import (
    normalize_period,
    period_from_date,
    previous_quarter,
    previous_year_quarter,
    quarter_range,
    quarter_start_date,
    require_period,
    split_period,
)


# ---------------------------------------------------------------------------
# normalize_period
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024Q4", "2024Q4"),
        ("2024q4", "2024Q4"),
        ("2024 Q4", "2024Q4"),
        ("2024-Q4", "2024Q4"),
        ("Q4 2024", "2024Q4"),
        ("q1-2025", "2025Q1"),
        ("2024K3", "2024Q3"),
        ("K2 2023", "2023Q2"),
        ("2024 kvartal 1", "2024Q1"),
        ("Mitt konto Q4 2024", "2024Q4"),
        ("  2024 Q2  ", "2024Q2"),
        ("2024-11-15", "2024Q4"),
        ("2024-02-01 08:00:00", "2024Q1"),
    ],
)
def test_normalize_period_accepts_loose_spellings(raw: str, expected: str) -> None:
    assert normalize_period(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", None, "2024Q5", "24Q4", "Q0 2024", "kvartal", "total"])
def test_normalize_period_rejects_unreadable_values(raw) -> None:
    assert normalize_period(raw) is None


def test_normalize_period_reads_dates() -> None:
    assert normalize_period(date(2024, 3, 31)) == "2024Q1"
    assert normalize_period(datetime(2024, 4, 1, 12, 0)) == "2024Q2"


def test_normalize_period_is_idempotent() -> None:
    for raw in ("Q3 2024", "2024 kvartal 3", "2024-08-01"):
        once = normalize_period(raw)
        assert normalize_period(once) == once


def test_require_period_raises_invalid_period_format() -> None:
    with pytest.raises(InvalidPeriodFormat) as exc_info:
        require_period("sometime in 2024")

    assert exc_info.value.code == "invalid_period_format"
    # Also a ValueError so plain parsing callers can catch it.
    assert isinstance(exc_info.value, ValueError)


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


def test_previous_quarter_wraps_year() -> None:
    assert previous_quarter("2024Q1") == "2023Q4"
    assert previous_quarter("2024Q3") == "2024Q2"


def test_previous_year_quarter() -> None:
    assert previous_year_quarter("2024Q4") == "2023Q4"


def test_split_period_requires_canonical_token() -> None:
    assert split_period("2025Q2") == (2025, 2)
    with pytest.raises(InvalidPeriodFormat):
        split_period("2025 Q2")


def test_quarter_range_is_inclusive() -> None:
    assert quarter_range("2023Q3", "2024Q2") == ["2023Q3", "2023Q4", "2024Q1", "2024Q2"]
    assert quarter_range("2024Q2", "2024Q2") == ["2024Q2"]
    assert quarter_range("2024Q3", "2024Q1") == []


def test_quarter_start_date_and_period_from_date_agree() -> None:
    assert quarter_start_date("2024Q3") == date(2024, 7, 1)
    assert period_from_date(quarter_start_date("2024Q3")) == "2024Q3"


def test_canonical_tokens_sort_chronologically_as_strings() -> None:
    periods = [normalize_period(raw) for raw in ("2024 Q1", "Q4 2023", "2022-Q2", "2023Q1")]

    assert sorted(periods) == ["2022Q2", "2023Q1", "2023Q4", "2024Q1"]
