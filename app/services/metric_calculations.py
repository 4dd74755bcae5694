"""
app/services/metric_calculations.py

Deterministic metric arithmetic shared by the NDI metrics service and the
KPI resolver.

No database logic lives here; callers fetch rows and pass plain numbers.

Formulas
--------
Percent change   = (current - baseline) / baseline * 100
Weighted mean    = Σ(value * weight) / Σ(weight)   (plain mean without weights)
Rolling 4Q       = mean of the target quarter and the three before it
NDI percent      = value clamped to 0..100, rounded half up
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Sequence

from app.domain.period import previous_quarter

logger = logging.getLogger(__name__)

# Fewer valid quarters than this in the 4-quarter window gives no rolling value.
ROLLING_MIN_QUARTERS = 2


def percent_change(current: float | None, baseline: float | None) -> float | None:
    """
    Percentage change from ``baseline`` to ``current``.

    Edge cases
    ----------
    * either side missing → ``None``
    * ``baseline == 0`` → ``None``; a zero baseline makes the change undefined
    * non-finite result → ``None``
    """
    if current is None or baseline is None:
        return None
    if baseline == 0:
        logger.debug("Percent change skipped: baseline is zero.")
        return None

    change = (current - baseline) / baseline * 100
    if not math.isfinite(change):
        return None
    return change


def weighted_mean(rows: Sequence[tuple[float, float | None]]) -> float | None:
    """
    Mean of ``(value, weight)`` pairs.

    Rows with a positive weight are weighted; when no row carries a
    positive weight the plain mean of all values is returned. Empty input
    gives ``None``.
    """
    if not rows:
        return None

    weighted = [(value, weight) for value, weight in rows if weight is not None and weight > 0]
    if not weighted:
        return sum(value for value, _ in rows) / len(rows)

    denominator = sum(weight for _, weight in weighted)
    if denominator == 0:
        return None
    return sum(value * weight for value, weight in weighted) / denominator


def rolling_4q(values_by_period: Mapping[str, float | None], period: str) -> float | None:
    """
    Rolling four-quarter mean ending at ``period``.

    Needs at least :data:`ROLLING_MIN_QUARTERS` quarters with data in the
    window; otherwise ``None``.
    """
    window = [period]
    for _ in range(3):
        window.append(previous_quarter(window[-1]))

    values = [values_by_period[p] for p in window if values_by_period.get(p) is not None]
    if len(values) < ROLLING_MIN_QUARTERS:
        return None
    return sum(values) / len(values)


def ndi_percent(value: float | None) -> int | None:
    """
    Display form of an NDI value: clamped to 0..100 and rounded half up.
    """
    if value is None or not math.isfinite(value):
        return None
    clamped = min(100.0, max(0.0, value))
    return int(math.floor(clamped + 0.5))


def mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)
