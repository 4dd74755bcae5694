"""
app/domain/period.py

Quarter period normalization and arithmetic.

Every period stored or compared by the dashboard uses the canonical token
``YYYYQn`` (4-digit year, ``Q``, quarter 1-4). Canonical tokens sort
lexicographically in chronological order; the metric store's latest-period
query depends on that.
"""

from __future__ import annotations

import re
from datetime import date, datetime

from app.domain.errors import InvalidPeriodFormat

_CANONICAL_RE = re.compile(r"^(\d{4})Q([1-4])$")

# "2024Q4", "2024 Q4", "2024-Q4", "2024K4", "2024 kvartal 4"
_YEAR_FIRST_RE = re.compile(
    r"(?<!\d)(\d{4})\s*[-_/.:]?\s*(?:Q|K|kvartal\s*)\s*([1-4])(?!\d)",
    re.IGNORECASE,
)
# "Q4 2024", "q4-2024", "K4 2024", "Mitt konto Q4 2024"
_QUARTER_FIRST_RE = re.compile(
    r"(?<![A-Za-z\d])(?:Q|K)\s*([1-4])\s*[-_/.:,]?\s*(\d{4})(?!\d)",
    re.IGNORECASE,
)
# "2024-11-15", "2024-11-15 08:00:00" from date columns
_ISO_DATE_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])-\d{2}(?:[ T].*)?$")


def normalize_period(raw: object) -> str | None:
    """
    Return the canonical ``YYYYQn`` token for a loose period spelling.

    Returns None when no 4-digit year or no quarter 1-4 can be extracted.
    Calling it on its own output returns the same token.
    """

    if raw is None:
        return None
    if isinstance(raw, (datetime, date)):
        return period_from_date(raw)

    text = str(raw).strip()
    if not text:
        return None

    canonical = _CANONICAL_RE.match(text)
    if canonical:
        return text

    match = _YEAR_FIRST_RE.search(text)
    if match:
        return f"{match.group(1)}Q{match.group(2)}"

    match = _QUARTER_FIRST_RE.search(text)
    if match:
        return f"{match.group(2)}Q{match.group(1)}"

    match = _ISO_DATE_RE.match(text)
    if match:
        return f"{match.group(1)}Q{(int(match.group(2)) - 1) // 3 + 1}"

    return None


def require_period(raw: object) -> str:
    """
    Like :func:`normalize_period` but raises ``InvalidPeriodFormat``.
    """

    period = normalize_period(raw)
    if period is None:
        raise InvalidPeriodFormat(raw)
    return period


def period_from_date(value: date | datetime) -> str:
    quarter = (value.month - 1) // 3 + 1
    return f"{value.year:04d}Q{quarter}"


def split_period(period: str) -> tuple[int, int]:
    """
    Split a canonical token into ``(year, quarter)``.
    """

    match = _CANONICAL_RE.match(period)
    if not match:
        raise InvalidPeriodFormat(period)
    return int(match.group(1)), int(match.group(2))


def previous_quarter(period: str) -> str:
    year, quarter = split_period(period)
    if quarter == 1:
        return f"{year - 1}Q4"
    return f"{year}Q{quarter - 1}"


def previous_year_quarter(period: str) -> str:
    year, quarter = split_period(period)
    return f"{year - 1}Q{quarter}"


def quarter_range(start: str, end: str) -> list[str]:
    """
    Inclusive list of quarters from ``start`` to ``end``.

    Returns an empty list when ``start`` is after ``end``.
    """

    year, quarter = split_period(start)
    end_year, end_quarter = split_period(end)
    periods: list[str] = []
    while (year, quarter) <= (end_year, end_quarter):
        periods.append(f"{year}Q{quarter}")
        quarter += 1
        if quarter > 4:
            year, quarter = year + 1, 1
    return periods


def quarter_start_date(period: str) -> date:
    year, quarter = split_period(period)
    return date(year, (quarter - 1) * 3 + 1, 1)
