"""
app/domain/kpi.py

Typed query and response structures for dashboard KPI resolution.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date


class KpiMetric(str, enum.Enum):
    """Every metric the dashboard can request."""

    MAU = "mau"
    PAGEVIEWS = "pageviews"
    TASKS = "tasks"
    FEATURES = "features"
    NDI = "ndi"
    PERF = "perf"
    USERS = "users"
    TASKS_RATE = "tasks_rate"
    FEATURES_RATE = "features_rate"
    CWV_TOTAL = "cwv_total"
    SESSIONS = "sessions"
    ENGAGED_SESSIONS = "engaged_sessions"
    ENGAGEMENT_RATE = "engagement_rate"
    AVG_ENGAGEMENT_TIME = "avg_engagement_time"


class Grain(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class ComparisonMode(str, enum.Enum):
    """Which window the comparison series covers."""

    NONE = "none"
    YOY = "yoy"
    PREV = "prev"


class Dimension(str, enum.Enum):
    AUDIENCE = "audience"
    DEVICE = "device"
    CHANNEL = "channel"
    TASK = "task"
    FEATURE = "feature"


class Aggregation(str, enum.Enum):
    """How daily values roll up: counts add, rates and scores average."""

    SUM = "sum"
    MEAN = "mean"


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date
    grain: Grain = Grain.DAY
    comparison_mode: ComparisonMode = ComparisonMode.NONE

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Range end {self.end} precedes start {self.start}.")

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class KpiFilters:
    """
    Dimension selections. An empty tuple means "all values".
    """

    audience: tuple[str, ...] = ()
    device: tuple[str, ...] = ()
    channel: tuple[str, ...] = ()
    task: tuple[str, ...] = ()
    feature: tuple[str, ...] = ()
    breakdown_by: Dimension | None = None

    def selected(self, dimension: Dimension) -> tuple[str, ...]:
        return getattr(self, dimension.value)

    @property
    def active_dimensions(self) -> tuple[Dimension, ...]:
        return tuple(dimension for dimension in Dimension if self.selected(dimension))


@dataclass(frozen=True)
class KpiQuery:
    metric: KpiMetric
    range: DateRange
    filters: KpiFilters = field(default_factory=KpiFilters)


@dataclass(frozen=True)
class KpiPoint:
    date: str
    value: float


@dataclass(frozen=True)
class BreakdownRow:
    key: str
    value: float
    yoy_pct: float | None = None


@dataclass(frozen=True)
class KpiSummary:
    """
    ``prev`` is the baseline of the requested comparison: the year-ago
    window for ``none``/``yoy``, the preceding window for ``prev``.
    """

    current: float | None
    prev: float | None
    yoy_pct: float | None
    qoq_pct: float | None


@dataclass(frozen=True)
class KpiMeta:
    source: str
    metric: str
    dims: tuple[str, ...] = ()


@dataclass(frozen=True)
class KpiResponse:
    meta: KpiMeta
    summary: KpiSummary
    timeseries: list[KpiPoint]
    compare_timeseries: list[KpiPoint] | None = None
    breakdown: list[BreakdownRow] | None = None
    notes: tuple[str, ...] = ()
