"""
app/api/routers/kpi_router.py

Dashboard KPI endpoint.

GET takes flat query parameters for simple links; POST takes the nested
request body the dashboard sends. Both resolve through :class:`KpiResolver`.
"""

from __future__ import annotations

import datetime as dt
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_request_dashboard_settings
from app.config import DashboardSettings
from app.domain.kpi import ComparisonMode, DateRange, Dimension, Grain, KpiFilters, KpiMetric, KpiQuery
from app.schemas.common import ErrorResponse
from app.schemas.kpi import KpiRequest, KpiResponseModel
from app.services.kpi_backends import METRIC_SPECS, MockKpiBackend, NdiStoreBackend
from app.services.kpi_resolver import KpiResolver
from app.services.ndi_metrics_service import NdiMetricsService
from db.repositories.errors import StorageError
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["kpi"],
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


def get_kpi_resolver(
    settings: DashboardSettings = Depends(get_request_dashboard_settings),
    db: Session = Depends(get_db),
) -> KpiResolver:
    """
    Resolver wired to the configured backends; NDI reads the metric store
    unless ``KPI_NDI_SOURCE=mock``.
    """

    backends = {}
    if settings.ndi_source == "store":
        backends[KpiMetric.NDI] = NdiStoreBackend(NdiMetricsService(db))
    return KpiResolver(backends=backends, default_backend=MockKpiBackend())


def _resolve(query: KpiQuery, resolver: KpiResolver, settings: DashboardSettings) -> KpiResponseModel:
    section = METRIC_SPECS[query.metric].section
    if not settings.is_enabled(section):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Dashboard section '{section}' is disabled.",
        )
    try:
        response = resolver.get_kpi(query)
    except StorageError as exc:
        logger.exception("KPI resolution failed metric=%s", query.metric.value)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Metric store unavailable.", "code": "storage_error"},
        ) from exc
    return KpiResponseModel.from_domain(response)


@router.get("/kpi", response_model=KpiResponseModel, response_model_by_alias=True)
def get_kpi(
    metric: KpiMetric = Query(...),
    start: dt.date = Query(...),
    end: dt.date = Query(...),
    grain: Grain = Query(default=Grain.DAY),
    comparison_mode: ComparisonMode = Query(default=ComparisonMode.NONE, alias="comparisonMode"),
    breakdown_by: Dimension | None = Query(default=None, alias="breakdownBy"),
    audience: list[str] = Query(default=[]),
    device: list[str] = Query(default=[]),
    channel: list[str] = Query(default=[]),
    task: list[str] = Query(default=[]),
    feature: list[str] = Query(default=[]),
    resolver: KpiResolver = Depends(get_kpi_resolver),
    settings: DashboardSettings = Depends(get_request_dashboard_settings),
) -> KpiResponseModel:
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end must not precede start.",
        )
    query = KpiQuery(
        metric=metric,
        range=DateRange(start=start, end=end, grain=grain, comparison_mode=comparison_mode),
        filters=KpiFilters(
            audience=tuple(audience),
            device=tuple(device),
            channel=tuple(channel),
            task=tuple(task),
            feature=tuple(feature),
            breakdown_by=breakdown_by,
        ),
    )
    return _resolve(query, resolver, settings)


@router.post("/kpi", response_model=KpiResponseModel, response_model_by_alias=True)
def post_kpi(
    body: KpiRequest,
    resolver: KpiResolver = Depends(get_kpi_resolver),
    settings: DashboardSettings = Depends(get_request_dashboard_settings),
) -> KpiResponseModel:
    return _resolve(body.to_query(), resolver, settings)
