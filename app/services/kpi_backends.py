"""
app/services/kpi_backends.py

Data backends behind the KPI resolver.

    MockKpiBackend   deterministic seeded daily series for every metric
    NdiStoreBackend  quarterly NDI values read from the metric store

Both satisfy :class:`KpiBackend`; the resolver picks one per metric.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Protocol, Sequence

from app.domain.kpi import Aggregation, BreakdownRow, Dimension, KpiFilters, KpiMetric, KpiPoint
from app.domain.period import period_from_date, quarter_range, quarter_start_date
from app.services.metric_calculations import percent_change

logger = logging.getLogger(__name__)

SEASONALITY_BY_MONTH: tuple[float, ...] = (1, 0.95, 1.02, 1.04, 1.05, 1.01, 0.85, 0.98, 1.03, 1.04, 1.02, 1.01)


@dataclass(frozen=True)
class MetricSpec:
    """
    How a metric aggregates, where it shows up, and its mock seed.
    """

    aggregation: Aggregation
    section: str
    base: float
    noise: float = 0.08


METRIC_SPECS: dict[KpiMetric, MetricSpec] = {
    KpiMetric.MAU: MetricSpec(Aggregation.MEAN, "usage", base=42000),
    KpiMetric.PAGEVIEWS: MetricSpec(Aggregation.SUM, "usage", base=18000),
    KpiMetric.TASKS: MetricSpec(Aggregation.SUM, "overview", base=950),
    KpiMetric.FEATURES: MetricSpec(Aggregation.SUM, "overview", base=1400),
    KpiMetric.NDI: MetricSpec(Aggregation.MEAN, "ndi", base=62, noise=0.03),
    KpiMetric.PERF: MetricSpec(Aggregation.MEAN, "cwv", base=78, noise=0.05),
    KpiMetric.USERS: MetricSpec(Aggregation.SUM, "usage", base=5200),
    KpiMetric.TASKS_RATE: MetricSpec(Aggregation.MEAN, "overview", base=64, noise=0.05),
    KpiMetric.FEATURES_RATE: MetricSpec(Aggregation.MEAN, "overview", base=38, noise=0.05),
    KpiMetric.CWV_TOTAL: MetricSpec(Aggregation.MEAN, "cwv", base=71, noise=0.04),
    KpiMetric.SESSIONS: MetricSpec(Aggregation.SUM, "usage", base=7400),
    KpiMetric.ENGAGED_SESSIONS: MetricSpec(Aggregation.SUM, "usage", base=4600),
    KpiMetric.ENGAGEMENT_RATE: MetricSpec(Aggregation.MEAN, "usage", base=62, noise=0.05),
    KpiMetric.AVG_ENGAGEMENT_TIME: MetricSpec(Aggregation.MEAN, "usage", base=95),
}

_missing_specs = set(KpiMetric) - set(METRIC_SPECS)
if _missing_specs:
    raise RuntimeError(f"KPI metrics without a spec: {sorted(m.value for m in _missing_specs)}")

DIMENSION_KEYS: dict[Dimension, tuple[str, ...]] = {
    Dimension.AUDIENCE: ("Styrelse", "Medlem", "Leverantör", "Förvaltare"),
    Dimension.DEVICE: ("Desktop", "Mobil", "Surfplatta"),
    Dimension.CHANNEL: ("Direkt", "Organiskt", "Kampanj", "E-post"),
    Dimension.TASK: ("Felanmälan", "Bokning", "Fakturor", "Dokument"),
    Dimension.FEATURE: ("Sök", "Chatt", "Notiser", "Mina sidor"),
}


def deterministic_random(key: str) -> float:
    """
    Stable string hash mapped onto [0, 1]. Not cryptographic.
    """

    h = 2166136261
    for ch in key:
        h ^= ord(ch)
        h = (h + (h << 1) + (h << 4) + (h << 7) + (h << 8) + (h << 24)) & 0xFFFFFFFF
    return h / 4294967295


def iter_days(start: date, end: date):
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


class KpiBackend(Protocol):
    """
    Source of daily KPI values and dimension breakdowns.
    """

    source_label: str

    def daily_series(
        self,
        metric: KpiMetric,
        start: date,
        end: date,
        filters: KpiFilters,
    ) -> list[KpiPoint]:
        ...

    def breakdown(
        self,
        metric: KpiMetric,
        dimension: Dimension,
        *,
        current: float,
        prior: float | None,
        filters: KpiFilters,
    ) -> list[BreakdownRow] | None:
        ...


class MockKpiBackend:
    """
    Seeded series: ``base * seasonality[month] * (1 ± noise)`` per day.

    The jitter is a hash of metric and date, so any grain or overlapping
    range sees the same daily values on every request.
    """

    source_label = "mock"

    def __init__(self, specs: dict[KpiMetric, MetricSpec] | None = None) -> None:
        self._specs = specs or METRIC_SPECS

    def daily_series(
        self,
        metric: KpiMetric,
        start: date,
        end: date,
        filters: KpiFilters,
    ) -> list[KpiPoint]:
        spec = self._specs[metric]
        scale = self._filter_scale(metric, spec, filters)
        points: list[KpiPoint] = []
        for day in iter_days(start, end):
            iso = day.isoformat()
            jitter = 1 + (deterministic_random(f"{metric.value}:{iso}") * 2 - 1) * spec.noise
            raw = max(0.0, spec.base * SEASONALITY_BY_MONTH[day.month - 1] * jitter * scale)
            value = round(raw) if spec.aggregation is Aggregation.SUM else round(raw, 1)
            points.append(KpiPoint(date=iso, value=float(value)))
        return points

    def breakdown(
        self,
        metric: KpiMetric,
        dimension: Dimension,
        *,
        current: float,
        prior: float | None,
        filters: KpiFilters,
    ) -> list[BreakdownRow]:
        spec = self._specs[metric]
        keys = filters.selected(dimension) or DIMENSION_KEYS[dimension]
        shares = _shares(metric, dimension, keys)
        prior_shares = _shares(metric, dimension, keys, salt="prior")

        known = DIMENSION_KEYS[dimension]
        totals = _split_total(current, keys, shares) if spec.aggregation is Aggregation.SUM else {}

        rows: list[BreakdownRow] = []
        for key in keys:
            if key not in known:
                rows.append(BreakdownRow(key=key, value=0.0))
                continue
            if spec.aggregation is Aggregation.SUM:
                value = totals[key]
                baseline = None if prior is None else prior * prior_shares[key]
            else:
                # Rates differ per segment around the overall level.
                value = round(current * (0.85 + 0.3 * deterministic_random(f"{metric.value}:{key}")), 1)
                baseline = None if prior is None else prior * (0.85 + 0.3 * deterministic_random(f"{metric.value}:{key}:prior"))
            yoy = percent_change(value, baseline)
            rows.append(BreakdownRow(key=key, value=value, yoy_pct=None if yoy is None else round(yoy, 2)))
        return rows

    def _filter_scale(self, metric: KpiMetric, spec: MetricSpec, filters: KpiFilters) -> float:
        if spec.aggregation is not Aggregation.SUM:
            return 1.0
        scale = 1.0
        for dimension in filters.active_dimensions:
            shares = _shares(metric, dimension, DIMENSION_KEYS[dimension])
            scale *= sum(shares.get(key, 0.0) for key in filters.selected(dimension))
        return scale


class NdiStoreBackend:
    """
    NDI values from uploaded survey data, one point per quarter.

    Each quarter overlapping the range yields a point dated at the later of
    the quarter start and the range start.
    """

    source_label = "store"

    def __init__(self, ndi_metrics) -> None:
        self._ndi_metrics = ndi_metrics

    def daily_series(
        self,
        metric: KpiMetric,
        start: date,
        end: date,
        filters: KpiFilters,
    ) -> list[KpiPoint]:
        if metric is not KpiMetric.NDI:
            raise ValueError(f"NdiStoreBackend only serves 'ndi', got '{metric.value}'.")

        points: list[KpiPoint] = []
        for period in quarter_range(period_from_date(start), period_from_date(end)):
            value = self._ndi_metrics.period_value(period)
            if value is None:
                continue
            points.append(KpiPoint(date=max(quarter_start_date(period), start).isoformat(), value=value))
        logger.debug("NDI store series %s..%s points=%d", start, end, len(points))
        return points

    def breakdown(
        self,
        metric: KpiMetric,
        dimension: Dimension,
        *,
        current: float,
        prior: float | None,
        filters: KpiFilters,
    ) -> None:
        return None


def _shares(metric: KpiMetric, dimension: Dimension, keys: Sequence[str], *, salt: str = "") -> dict[str, float]:
    """
    Deterministic share of each of ``keys``. Known keys split 1 between
    them; keys outside the dimension get 0.
    """

    known = DIMENSION_KEYS[dimension]
    weights = {
        key: 0.7 + 0.6 * deterministic_random(f"{metric.value}:{dimension.value}:{key}:{salt}")
        for key in keys
        if key in known
    }
    total = sum(weights.values())
    return {key: weights[key] / total if key in weights else 0.0 for key in keys}


def _split_total(total: float, keys: Sequence[str], shares: dict[str, float]) -> dict[str, float]:
    """
    Whole-number split of ``total`` by share; the last key with a share
    takes the rounding remainder so the parts add up to ``total``.
    """

    values = {key: float(round(total * shares[key])) for key in keys}
    carriers = [key for key in keys if shares[key] > 0]
    if carriers:
        last = carriers[-1]
        values[last] = total - (sum(values.values()) - values[last])
    return values
