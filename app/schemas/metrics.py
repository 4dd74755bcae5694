"""
app/schemas/metrics.py

Response schemas for stored NDI metric endpoints.
"""

from __future__ import annotations

from pydantic import Field

from app.schemas.common import CamelModel


class BreakdownRowResponse(CamelModel):
    period: str
    group_a: str | None = None
    group_b: str | None = None
    group_c: str | None = None
    value: float
    weight: float | None = None


class ClearPeriodResponse(CamelModel):
    success: bool = True
    deleted_rows: int = Field(..., ge=0)
    period: str


class NdiSummaryResponse(CamelModel):
    period: str
    total: float
    ndi_percent: int | None = None
    previous_quarter: str
    previous_quarter_value: float | None = None
    previous_year: str
    previous_year_value: float | None = None
    qoq_change: float | None = None
    yoy_change: float | None = None
    rolling4q: float | None = Field(default=None, alias="rolling4q")


class NdiSeriesPointResponse(CamelModel):
    period: str
    value: float
    r4: float | None = None
    yoy: float | None = None


class NdiSeriesResponse(CamelModel):
    points: list[NdiSeriesPointResponse] = Field(default_factory=list)


class BreakdownHistoryRowResponse(CamelModel):
    group_a: str | None = None
    group_b: str | None = None
    group_c: str | None = None
    value: float
    weight: float | None = None
    previous_quarter_value: float | None = None
    previous_year_value: float | None = None
    qoq_change: float | None = None
    yoy_change: float | None = None


class BreakdownHistoryResponse(CamelModel):
    period: str
    previous_quarter: str
    previous_year: str
    rows: list[BreakdownHistoryRowResponse] = Field(default_factory=list)


class CalculationRowResponse(CamelModel):
    value: float
    weight: float | None = None
    group_a: str | None = None
    group_b: str | None = None
    group_c: str | None = None


class NdiCalculationResponse(CamelModel):
    period: str
    source: str
    aggregated_rows: list[CalculationRowResponse] = Field(default_factory=list)
    breakdown_rows: list[CalculationRowResponse] = Field(default_factory=list)
    final_value: float
    calculation_method: str
    previous_quarter_value: float | None = None
    previous_year_value: float | None = None
    qoq_change: float | None = None
    yoy_change: float | None = None
