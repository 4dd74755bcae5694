"""
app/schemas package marker.
"""

from app.schemas.common import CamelModel, ErrorResponse
from app.schemas.files import FileDeleteResponse, FileListResponse, FileUploadResponse
from app.schemas.ingestion import ColumnMappingResponse, IngestionResponse, ValidationReportResponse
from app.schemas.kpi import KpiRequest, KpiResponseModel
from app.schemas.metrics import (
    BreakdownHistoryResponse,
    BreakdownRowResponse,
    ClearPeriodResponse,
    NdiCalculationResponse,
    NdiSeriesResponse,
    NdiSummaryResponse,
)

__all__ = [
    "BreakdownHistoryResponse",
    "BreakdownRowResponse",
    "CamelModel",
    "ClearPeriodResponse",
    "ColumnMappingResponse",
    "ErrorResponse",
    "FileDeleteResponse",
    "FileListResponse",
    "FileUploadResponse",
    "IngestionResponse",
    "KpiRequest",
    "KpiResponseModel",
    "NdiCalculationResponse",
    "NdiSeriesResponse",
    "NdiSummaryResponse",
    "ValidationReportResponse",
]
