"""
app/schemas/ingestion.py

Response schemas for spreadsheet ingestion endpoints.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


class ColumnMappingResponse(CamelModel):
    """
    Header chosen for each logical field; absent fields were not mapped.
    """

    group_a: str | None = None
    group_b: str | None = None
    group_c: str | None = None
    value: str | None = None
    weight: str | None = None
    period: str | None = None


class ValidationReportResponse(CamelModel):
    file_id: UUID
    detected_periods: list[str] = Field(default_factory=list)
    row_count: int = Field(..., ge=0)
    ignored_rows: int = Field(..., ge=0)
    column_mapping: ColumnMappingResponse
    warnings: list[str] = Field(default_factory=list)


class IngestionResponse(CamelModel):
    """
    API response model for one successful ingestion.
    """

    success: bool = True
    metric_points_count: int = Field(..., ge=0)
    file_id: UUID
    validation_report: ValidationReportResponse
