"""
app/services package marker.
"""

from app.services.kpi_resolver import KpiResolver
from app.services.metric_ingestion_service import (
    MetricIngestionService,
    get_metric_ingestion_service,
)
from app.services.metric_store_service import MetricStoreService
from app.services.ndi_metrics_service import NdiMetricsService
from app.services.spreadsheet_ingestor import SpreadsheetIngestor

__all__ = [
    "KpiResolver",
    "MetricIngestionService",
    "get_metric_ingestion_service",
    "MetricStoreService",
    "NdiMetricsService",
    "SpreadsheetIngestor",
]
