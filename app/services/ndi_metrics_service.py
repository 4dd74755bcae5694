"""
app/services/ndi_metrics_service.py

Read-side NDI metrics: period totals, quarter-over-quarter and
year-over-year comparisons, rolling averages and per-area history.

A period's value is resolved in this order:

    1. the aggregated total row (AGGREGATED source, no group dimensions);
       several total rows are averaged
    2. weighted mean of the period's BREAKDOWN rows
    3. weighted mean of the period's grouped AGGREGATED rows
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Sequence

from sqlalchemy.orm import Session

from app.domain.period import previous_quarter, previous_year_quarter
from app.repositories.metric_point_repository import MetricPointRepository
from app.services.metric_calculations import mean, ndi_percent, percent_change, rolling_4q, weighted_mean
from db.models.metric_point import MetricKey, MetricPoint, MetricSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NdiSummary:
    period: str
    total: float
    ndi_percent: int | None
    previous_quarter: str
    previous_quarter_value: float | None
    previous_year: str
    previous_year_value: float | None
    qoq_change: float | None
    yoy_change: float | None
    rolling4q: float | None


@dataclass(frozen=True)
class NdiSeriesPoint:
    period: str
    value: float
    r4: float | None
    yoy: float | None


@dataclass(frozen=True)
class BreakdownHistoryRow:
    """
    One aggregated group row with the same group's earlier values.
    """

    group_a: str | None
    group_b: str | None
    group_c: str | None
    value: float
    weight: float | None
    previous_quarter_value: float | None
    previous_year_value: float | None
    qoq_change: float | None
    yoy_change: float | None


@dataclass(frozen=True)
class CalculationRow:
    value: float
    weight: float | None
    group_a: str | None
    group_b: str | None
    group_c: str | None


@dataclass(frozen=True)
class NdiCalculation:
    """
    How a period's NDI value was derived from its stored rows.
    """

    period: str
    source: str
    aggregated_rows: list[CalculationRow]
    breakdown_rows: list[CalculationRow]
    final_value: float
    calculation_method: str
    previous_quarter_value: float | None
    previous_year_value: float | None
    qoq_change: float | None
    yoy_change: float | None


class NdiMetricsService:
    """
    Aggregates stored NDI points into dashboard figures.
    """

    def __init__(self, session: Session, *, metric: str = MetricKey.NDI.value) -> None:
        self._repository = MetricPointRepository(session)
        self._metric = metric

    def latest_period(self) -> str | None:
        return self._repository.latest_period(self._metric)

    def breakdown(self, period: str) -> list[MetricPoint]:
        return self._repository.list_breakdown(period, self._metric)

    def period_value(self, period: str) -> float | None:
        points = self._repository.query_by_period_and_metric(period, self._metric)
        return _resolve_period_value(points)

    def calculation(self, period: str) -> NdiCalculation | None:
        """
        The stored rows behind ``period``'s value and the rule that
        combined them; None without data.
        """

        points = self._repository.query_by_period_and_metric(period, self._metric)
        resolved = _resolve_period(points)
        if resolved is None:
            return None
        final_value, source, method = resolved

        prev_q_value = self.period_value(previous_quarter(period))
        prev_y_value = self.period_value(previous_year_quarter(period))
        return NdiCalculation(
            period=period,
            source=source,
            aggregated_rows=[_calculation_row(p) for p in points if p.source == MetricSource.AGGREGATED.value],
            breakdown_rows=[_calculation_row(p) for p in points if p.source == MetricSource.BREAKDOWN.value],
            final_value=final_value,
            calculation_method=method,
            previous_quarter_value=prev_q_value,
            previous_year_value=prev_y_value,
            qoq_change=percent_change(final_value, prev_q_value),
            yoy_change=percent_change(final_value, prev_y_value),
        )

    def summary(self, period: str | None = None) -> NdiSummary | None:
        """
        Summary for ``period`` (latest period when omitted); None without data.
        """

        target = period or self.latest_period()
        if target is None:
            return None

        total = self.period_value(target)
        if total is None:
            return None

        prev_q = previous_quarter(target)
        prev_y = previous_year_quarter(target)
        window_values = {target: total}
        cursor = target
        for _ in range(3):
            cursor = previous_quarter(cursor)
            window_values[cursor] = self.period_value(cursor)
        prev_q_value = window_values[prev_q]
        prev_y_value = self.period_value(prev_y)

        return NdiSummary(
            period=target,
            total=total,
            ndi_percent=ndi_percent(total),
            previous_quarter=prev_q,
            previous_quarter_value=prev_q_value,
            previous_year=prev_y,
            previous_year_value=prev_y_value,
            qoq_change=percent_change(total, prev_q_value),
            yoy_change=percent_change(total, prev_y_value),
            rolling4q=rolling_4q(window_values, target),
        )

    def series(self, from_period: str | None = None, to_period: str | None = None) -> list[NdiSeriesPoint]:
        """
        Per-period values between ``from_period`` and ``to_period`` inclusive.

        Rolling and year-ago values may draw on quarters outside the range.
        """

        by_period: dict[str, list[MetricPoint]] = defaultdict(list)
        for point in self._repository.list_series_points(self._metric):
            by_period[point.period].append(point)

        values = {period: _resolve_period_value(points) for period, points in by_period.items()}

        series: list[NdiSeriesPoint] = []
        for period in sorted(values):
            if from_period and period < from_period:
                continue
            if to_period and period > to_period:
                continue
            value = values[period]
            if value is None:
                continue
            series.append(
                NdiSeriesPoint(
                    period=period,
                    value=value,
                    r4=rolling_4q(values, period),
                    yoy=values.get(previous_year_quarter(period)),
                )
            )
        return series

    def breakdown_with_history(self, period: str) -> list[BreakdownHistoryRow]:
        """
        Grouped aggregated rows of ``period`` matched by group key against
        the previous quarter and the same quarter a year earlier.
        """

        aggregated = MetricSource.AGGREGATED.value
        current = [
            point
            for point in self._repository.query_by_period_and_metric(period, self._metric, aggregated)
            if _group_key(point) != "||"
        ]
        previous = _index_by_group(
            self._repository.query_by_period_and_metric(previous_quarter(period), self._metric, aggregated)
        )
        year_ago = _index_by_group(
            self._repository.query_by_period_and_metric(previous_year_quarter(period), self._metric, aggregated)
        )

        rows: list[BreakdownHistoryRow] = []
        for point in current:
            key = _group_key(point)
            prev_value = previous[key].value if key in previous else None
            year_value = year_ago[key].value if key in year_ago else None
            rows.append(
                BreakdownHistoryRow(
                    group_a=point.group_a,
                    group_b=point.group_b,
                    group_c=point.group_c,
                    value=point.value,
                    weight=point.weight,
                    previous_quarter_value=prev_value,
                    previous_year_value=year_value,
                    qoq_change=percent_change(point.value, prev_value),
                    yoy_change=percent_change(point.value, year_value),
                )
            )
        logger.debug("Breakdown history period=%s rows=%d", period, len(rows))
        return rows


def _resolve_period_value(points: Sequence[MetricPoint]) -> float | None:
    resolved = _resolve_period(points)
    return None if resolved is None else resolved[0]


def _resolve_period(points: Sequence[MetricPoint]) -> tuple[float, str, str] | None:
    """
    ``(value, source, method)`` for one period's rows, or None.
    """

    aggregated = [p for p in points if p.source == MetricSource.AGGREGATED.value]
    totals = [p.value for p in aggregated if _group_key(p) == "||"]
    if len(totals) == 1:
        return totals[0], MetricSource.AGGREGATED.value, "Direct aggregated value"
    if totals:
        return mean(totals), MetricSource.AGGREGATED.value, f"Mean of {len(totals)} aggregated total rows"

    breakdown = [p for p in points if p.source == MetricSource.BREAKDOWN.value]
    for source, rows in ((MetricSource.BREAKDOWN.value, breakdown), (MetricSource.AGGREGATED.value, aggregated)):
        if not rows:
            continue
        value = weighted_mean([(p.value, p.weight) for p in rows])
        if value is None:
            continue
        weighted = any(p.weight is not None and p.weight > 0 for p in rows)
        label = "breakdown rows" if source == MetricSource.BREAKDOWN.value else "aggregated group rows"
        method = f"{'Weighted' if weighted else 'Plain'} mean of {len(rows)} {label}"
        return value, source, method
    return None


def _calculation_row(point: MetricPoint) -> CalculationRow:
    return CalculationRow(
        value=point.value,
        weight=point.weight,
        group_a=point.group_a,
        group_b=point.group_b,
        group_c=point.group_c,
    )


def _group_key(point: MetricPoint) -> str:
    return "|".join(part or "" for part in (point.group_a, point.group_b, point.group_c))


def _index_by_group(points: Sequence[MetricPoint]) -> dict[str, MetricPoint]:
    return {_group_key(point): point for point in points}
