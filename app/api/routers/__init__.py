"""
app/api/routers package marker.
"""

from app.api.routers.dashboard import router as dashboard_router
from app.api.routers.files import router as files_router
from app.api.routers.ingestion import router as ingestion_router
from app.api.routers.kpi_router import router as kpi_router
from app.api.routers.ndi_metrics import router as ndi_metrics_router

__all__ = [
    "dashboard_router",
    "files_router",
    "ingestion_router",
    "kpi_router",
    "ndi_metrics_router",
]
