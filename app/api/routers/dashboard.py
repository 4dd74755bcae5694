"""
app/api/routers/dashboard.py

Dashboard configuration endpoint read by the frontend on load.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import Field

from app.api.dependencies import get_request_dashboard_settings
from app.config import DashboardSettings
from app.schemas.common import CamelModel

router = APIRouter(tags=["dashboard"])


class DashboardConfigResponse(CamelModel):
    sections: list[str] = Field(default_factory=list)
    kpi_backend: str
    ndi_source: str


@router.get("/dashboard/config", response_model=DashboardConfigResponse)
def dashboard_config(
    settings: DashboardSettings = Depends(get_request_dashboard_settings),
) -> DashboardConfigResponse:
    return DashboardConfigResponse(
        sections=list(settings.enabled_sections),
        kpi_backend=settings.kpi_backend,
        ndi_source=settings.ndi_source,
    )
