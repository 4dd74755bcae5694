"""
app/api/routers/ndi_metrics.py

Read and clear endpoints for stored NDI metric points.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_optional_period, get_required_period, parse_period, require_section
from app.domain.period import previous_quarter, previous_year_quarter
from app.schemas.common import ErrorResponse
from app.schemas.metrics import (
    BreakdownHistoryResponse,
    BreakdownHistoryRowResponse,
    BreakdownRowResponse,
    CalculationRowResponse,
    ClearPeriodResponse,
    NdiCalculationResponse,
    NdiSeriesPointResponse,
    NdiSeriesResponse,
    NdiSummaryResponse,
)
from app.services.metric_store_service import MetricStoreService
from app.services.ndi_metrics_service import NdiMetricsService
from db.models.metric_point import MetricKey, MetricSource
from db.repositories.errors import StorageError
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["ndi-metrics"],
    dependencies=[Depends(require_section("ndi"))],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


def _storage_failure(exc: StorageError) -> HTTPException:
    logger.exception("Metric store read failed")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "Metric store unavailable.", "code": "storage_error"},
    )


@router.get("/latest-period", response_model=str | None)
def latest_period(
    metric: MetricKey = Query(default=MetricKey.NDI),
    db: Session = Depends(get_db),
) -> str | None:
    """
    Most recent period with stored points, or null.
    """

    try:
        return NdiMetricsService(db, metric=metric.value).latest_period()
    except StorageError as exc:
        raise _storage_failure(exc) from exc


@router.get("/breakdown", response_model=list[BreakdownRowResponse])
def breakdown(
    period: str = Depends(get_required_period),
    metric: MetricKey = Query(default=MetricKey.NDI),
    db: Session = Depends(get_db),
) -> list[BreakdownRowResponse]:
    """
    Breakdown rows of one period ordered by group_a, group_b, group_c.
    """

    try:
        rows = NdiMetricsService(db, metric=metric.value).breakdown(period)
    except StorageError as exc:
        raise _storage_failure(exc) from exc
    return [
        BreakdownRowResponse(
            period=row.period,
            group_a=row.group_a,
            group_b=row.group_b,
            group_c=row.group_c,
            value=row.value,
            weight=row.weight,
        )
        for row in rows
    ]


@router.delete("/clear", response_model=ClearPeriodResponse)
def clear_period(
    period: str = Depends(get_required_period),
    metric: MetricKey = Query(default=MetricKey.NDI),
    source: MetricSource | None = Query(default=None, description="Only clear rows of this kind"),
    db: Session = Depends(get_db),
) -> ClearPeriodResponse:
    """
    Delete all points of a period and deactivate the uploads that fed it.
    """

    try:
        deleted = MetricStoreService(db).clear_period(
            period,
            metric.value,
            source=source.value if source is not None else None,
        )
    except StorageError as exc:
        logger.exception("Clear failed period=%s", period)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to clear data.", "code": "storage_error"},
        ) from exc
    return ClearPeriodResponse(success=True, deleted_rows=deleted, period=period)


@router.get(
    "/metrics/ndi/summary",
    response_model=NdiSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
def ndi_summary(
    period: str | None = Depends(get_optional_period),
    db: Session = Depends(get_db),
) -> NdiSummaryResponse:
    """
    Period total with QoQ, YoY and rolling four-quarter figures.
    Defaults to the latest period.
    """

    try:
        summary = NdiMetricsService(db).summary(period)
    except StorageError as exc:
        raise _storage_failure(exc) from exc
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No NDI data for {period or 'any period'}.",
        )
    return NdiSummaryResponse(
        period=summary.period,
        total=summary.total,
        ndi_percent=summary.ndi_percent,
        previous_quarter=summary.previous_quarter,
        previous_quarter_value=summary.previous_quarter_value,
        previous_year=summary.previous_year,
        previous_year_value=summary.previous_year_value,
        qoq_change=summary.qoq_change,
        yoy_change=summary.yoy_change,
        rolling4q=summary.rolling4q,
    )


@router.get("/metrics/ndi/series", response_model=NdiSeriesResponse)
def ndi_series(
    from_period: str | None = Query(default=None, alias="from"),
    to_period: str | None = Query(default=None, alias="to"),
    db: Session = Depends(get_db),
) -> NdiSeriesResponse:
    """
    Quarterly NDI values with rolling four-quarter mean and year-ago value.
    """

    start = parse_period(from_period, name="from") if from_period else None
    end = parse_period(to_period, name="to") if to_period else None
    try:
        points = NdiMetricsService(db).series(start, end)
    except StorageError as exc:
        raise _storage_failure(exc) from exc
    return NdiSeriesResponse(
        points=[
            NdiSeriesPointResponse(period=p.period, value=p.value, r4=p.r4, yoy=p.yoy)
            for p in points
        ]
    )


@router.get("/metrics/ndi/breakdown-with-history", response_model=BreakdownHistoryResponse)
def ndi_breakdown_with_history(
    period: str | None = Depends(get_optional_period),
    db: Session = Depends(get_db),
) -> BreakdownHistoryResponse:
    """
    Aggregated group rows of a period with per-group QoQ and YoY changes.
    Defaults to the latest period.
    """

    service = NdiMetricsService(db)
    try:
        target = period or service.latest_period()
        if target is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No NDI data stored.")
        rows = service.breakdown_with_history(target)
    except StorageError as exc:
        raise _storage_failure(exc) from exc
    return BreakdownHistoryResponse(
        period=target,
        previous_quarter=previous_quarter(target),
        previous_year=previous_year_quarter(target),
        rows=[
            BreakdownHistoryRowResponse(
                group_a=row.group_a,
                group_b=row.group_b,
                group_c=row.group_c,
                value=row.value,
                weight=row.weight,
                previous_quarter_value=row.previous_quarter_value,
                previous_year_value=row.previous_year_value,
                qoq_change=row.qoq_change,
                yoy_change=row.yoy_change,
            )
            for row in rows
        ],
    )


@router.get(
    "/metrics/ndi/calculation",
    response_model=NdiCalculationResponse,
    responses={404: {"model": ErrorResponse}},
)
def ndi_calculation(
    period: str = Depends(get_required_period),
    db: Session = Depends(get_db),
) -> NdiCalculationResponse:
    """
    The stored rows behind a period's NDI value and how they were combined.
    """

    try:
        calculation = NdiMetricsService(db).calculation(period)
    except StorageError as exc:
        raise _storage_failure(exc) from exc
    if calculation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No NDI data for {period}.")
    return NdiCalculationResponse(
        period=calculation.period,
        source=calculation.source,
        aggregated_rows=[CalculationRowResponse(**vars(row)) for row in calculation.aggregated_rows],
        breakdown_rows=[CalculationRowResponse(**vars(row)) for row in calculation.breakdown_rows],
        final_value=calculation.final_value,
        calculation_method=calculation.calculation_method,
        previous_quarter_value=calculation.previous_quarter_value,
        previous_year_value=calculation.previous_year_value,
        qoq_change=calculation.qoq_change,
        yoy_change=calculation.yoy_change,
    )
