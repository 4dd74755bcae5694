"""
app/services/kpi_resolver.py

Resolves a KPI query into summary figures, a grain-bucketed time series,
an optional comparison series and an optional dimension breakdown.

Formulas
--------
current   = aggregate of the requested range (sum for counts, mean for rates)
yoy_pct   = (current - same range one year earlier) / that * 100
qoq_pct   = (current - preceding window of equal length) / that * 100

Both percentages are None on a zero or missing baseline.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, timedelta
from typing import Mapping, Sequence

from app.domain.kpi import (
    Aggregation,
    ComparisonMode,
    Grain,
    KpiMeta,
    KpiMetric,
    KpiPoint,
    KpiQuery,
    KpiResponse,
    KpiSummary,
)
from app.services.kpi_backends import METRIC_SPECS, KpiBackend, MockKpiBackend
from app.services.metric_calculations import mean, percent_change

logger = logging.getLogger(__name__)


def shift_years(value: date, years: int) -> date:
    """
    Same calendar day ``years`` away; Feb 29 falls back to Feb 28.
    """

    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def preceding_window(start: date, end: date) -> tuple[date, date]:
    """
    The window of equal length ending the day before ``start``.
    """

    length = (end - start).days + 1
    prev_end = start - timedelta(days=1)
    return prev_end - timedelta(days=length - 1), prev_end


def bucket_start(value: date, grain: Grain) -> date:
    if grain is Grain.WEEK:
        return value - timedelta(days=value.weekday())
    if grain is Grain.MONTH:
        return value.replace(day=1)
    return value


def aggregate_values(values: Sequence[float], aggregation: Aggregation) -> float | None:
    if not values:
        return None
    if aggregation is Aggregation.SUM:
        return float(sum(values))
    return mean(values)


def aggregate_series(points: Sequence[KpiPoint], grain: Grain, aggregation: Aggregation) -> list[KpiPoint]:
    """
    Bucket daily points by grain (weeks start Monday, months on the 1st),
    ascending by bucket date.
    """

    buckets: OrderedDict[str, list[float]] = OrderedDict()
    for point in sorted(points, key=lambda p: p.date):
        key = bucket_start(date.fromisoformat(point.date), grain).isoformat()
        buckets.setdefault(key, []).append(point.value)

    series: list[KpiPoint] = []
    for key, values in buckets.items():
        value = aggregate_values(values, aggregation)
        if aggregation is Aggregation.MEAN and value is not None:
            value = round(value, 2)
        series.append(KpiPoint(date=key, value=value if value is not None else 0.0))
    return series


class KpiResolver:
    """
    Picks a backend per metric and computes the response.
    """

    def __init__(
        self,
        *,
        backends: Mapping[KpiMetric, KpiBackend] | None = None,
        default_backend: KpiBackend | None = None,
    ) -> None:
        self._backends = dict(backends or {})
        self._default_backend = default_backend or MockKpiBackend()

    def backend_for(self, metric: KpiMetric) -> KpiBackend:
        return self._backends.get(metric, self._default_backend)

    def get_kpi(self, query: KpiQuery) -> KpiResponse:
        metric = query.metric
        spec = METRIC_SPECS[metric]
        backend = self.backend_for(metric)
        date_range = query.range
        filters = query.filters

        daily = backend.daily_series(metric, date_range.start, date_range.end, filters)
        year_ago = backend.daily_series(
            metric,
            shift_years(date_range.start, -1),
            shift_years(date_range.end, -1),
            filters,
        )
        prev_start, prev_end = preceding_window(date_range.start, date_range.end)
        preceding = backend.daily_series(metric, prev_start, prev_end, filters)

        current = aggregate_values([p.value for p in daily], spec.aggregation)
        prior = aggregate_values([p.value for p in year_ago], spec.aggregation)
        prev_window = aggregate_values([p.value for p in preceding], spec.aggregation)

        compare_timeseries = None
        baseline = prior
        if date_range.comparison_mode is ComparisonMode.YOY:
            compare_timeseries = aggregate_series(year_ago, date_range.grain, spec.aggregation)
        elif date_range.comparison_mode is ComparisonMode.PREV:
            compare_timeseries = aggregate_series(preceding, date_range.grain, spec.aggregation)
            baseline = prev_window

        notes = [f"Source: {backend.source_label}"]
        breakdown = None
        dims: tuple[str, ...] = tuple(d.value for d in filters.active_dimensions)
        if filters.breakdown_by is not None:
            dims = tuple(dict.fromkeys((*dims, filters.breakdown_by.value)))
            if current is None:
                notes.append("No data in range; breakdown omitted.")
            else:
                rows = backend.breakdown(metric, filters.breakdown_by, current=current, prior=prior, filters=filters)
                if rows is None:
                    notes.append(f"Breakdown by {filters.breakdown_by.value} is not available for this source.")
                else:
                    breakdown = sorted(rows, key=lambda row: (-row.value, row.key))
        if current is None:
            notes.append("No data in range.")

        logger.debug(
            "Resolved KPI metric=%s range=%s..%s grain=%s source=%s current=%s",
            metric.value,
            date_range.start,
            date_range.end,
            date_range.grain.value,
            backend.source_label,
            current,
        )
        return KpiResponse(
            meta=KpiMeta(source=backend.source_label, metric=metric.value, dims=dims),
            summary=KpiSummary(
                current=current,
                prev=baseline,
                yoy_pct=percent_change(current, prior),
                qoq_pct=percent_change(current, prev_window),
            ),
            timeseries=aggregate_series(daily, date_range.grain, spec.aggregation),
            compare_timeseries=compare_timeseries,
            breakdown=breakdown,
            notes=tuple(notes),
        )
