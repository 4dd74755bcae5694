"""
app/schemas/kpi.py

Request and response schemas for the KPI endpoint.
"""

from __future__ import annotations

import datetime as dt

from pydantic import Field, model_validator

from app.domain.kpi import (
    ComparisonMode,
    DateRange,
    Dimension,
    Grain,
    KpiFilters,
    KpiMetric,
    KpiQuery,
    KpiResponse,
)
from app.schemas.common import CamelModel


class KpiRangeRequest(CamelModel):
    start: dt.date
    end: dt.date
    grain: Grain = Grain.DAY
    comparison_mode: ComparisonMode = ComparisonMode.NONE

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "KpiRangeRequest":
        if self.end < self.start:
            raise ValueError("range.end must not precede range.start")
        return self


class KpiFiltersRequest(CamelModel):
    audience: list[str] = Field(default_factory=list)
    device: list[str] = Field(default_factory=list)
    channel: list[str] = Field(default_factory=list)
    task: list[str] = Field(default_factory=list)
    feature: list[str] = Field(default_factory=list)
    breakdown_by: Dimension | None = None


class KpiRequest(CamelModel):
    """
    POST body; unknown metrics are rejected by enum validation.
    """

    metric: KpiMetric
    range: KpiRangeRequest
    filters: KpiFiltersRequest = Field(default_factory=KpiFiltersRequest)

    def to_query(self) -> KpiQuery:
        return KpiQuery(
            metric=self.metric,
            range=DateRange(
                start=self.range.start,
                end=self.range.end,
                grain=self.range.grain,
                comparison_mode=self.range.comparison_mode,
            ),
            filters=KpiFilters(
                audience=tuple(self.filters.audience),
                device=tuple(self.filters.device),
                channel=tuple(self.filters.channel),
                task=tuple(self.filters.task),
                feature=tuple(self.filters.feature),
                breakdown_by=self.filters.breakdown_by,
            ),
        )


class KpiPointResponse(CamelModel):
    date: str
    value: float


class KpiBreakdownRowResponse(CamelModel):
    key: str
    value: float
    yoy_pct: float | None = None


class KpiSummaryResponse(CamelModel):
    current: float | None = None
    prev: float | None = None
    yoy_pct: float | None = None
    qoq_pct: float | None = None


class KpiMetaResponse(CamelModel):
    source: str
    metric: str
    dims: list[str] = Field(default_factory=list)


class KpiResponseModel(CamelModel):
    meta: KpiMetaResponse
    summary: KpiSummaryResponse
    timeseries: list[KpiPointResponse] = Field(default_factory=list)
    compare_timeseries: list[KpiPointResponse] | None = None
    breakdown: list[KpiBreakdownRowResponse] | None = None
    notes: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, response: KpiResponse) -> "KpiResponseModel":
        return cls(
            meta=KpiMetaResponse(
                source=response.meta.source,
                metric=response.meta.metric,
                dims=list(response.meta.dims),
            ),
            summary=KpiSummaryResponse(
                current=response.summary.current,
                prev=response.summary.prev,
                yoy_pct=response.summary.yoy_pct,
                qoq_pct=response.summary.qoq_pct,
            ),
            timeseries=[KpiPointResponse(date=p.date, value=p.value) for p in response.timeseries],
            compare_timeseries=(
                None
                if response.compare_timeseries is None
                else [KpiPointResponse(date=p.date, value=p.value) for p in response.compare_timeseries]
            ),
            breakdown=(
                None
                if response.breakdown is None
                else [
                    KpiBreakdownRowResponse(key=row.key, value=row.value, yoy_pct=row.yoy_pct)
                    for row in response.breakdown
                ]
            ),
            notes=list(response.notes),
        )
