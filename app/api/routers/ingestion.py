"""
app/api/routers/ingestion.py

Spreadsheet ingestion HTTP endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_spreadsheet_upload, require_section
from app.domain.errors import IngestionError, InvalidPeriodFormat
from app.schemas.common import ErrorResponse
from app.schemas.ingestion import ColumnMappingResponse, IngestionResponse, ValidationReportResponse
from app.services.metric_ingestion_service import MetricIngestionService, get_metric_ingestion_service
from db.repositories.errors import FileStorageError, StorageError, UploadValidationError
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingestion"], dependencies=[Depends(require_section("ndi"))])


@router.post(
    "/sync-like-ingestion",
    response_model=IngestionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def sync_like_ingestion(
    file: UploadFile = Depends(get_spreadsheet_upload),
    kind: str = Form(..., description="AGGREGATED or BREAKDOWN"),
    period: str | None = Form(default=None, description="Fallback period for rows without one"),
    db: Session = Depends(get_db),
    ingestion_service: MetricIngestionService = Depends(get_metric_ingestion_service),
) -> IngestionResponse:
    """
    Parse one spreadsheet and replace the stored points of every period it contains.
    """

    try:
        outcome = ingestion_service.ingest(
            db=db,
            file_name=file.filename or "",
            content=file.file.read(),
            kind=kind.strip().upper(),
            content_type=file.content_type,
            period=period.strip() if period and period.strip() else None,
        )
    except (UploadValidationError, InvalidPeriodFormat) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except IngestionError as exc:
        logger.warning("Ingestion rejected name=%r code=%s: %s", file.filename, exc.code, exc.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": exc.message, "code": exc.code},
        ) from exc
    except (StorageError, FileStorageError) as exc:
        logger.exception("Ingestion storage failure name=%r", file.filename)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Unable to store the uploaded metric data.", "code": "storage_error"},
        ) from exc
    finally:
        file.file.close()

    report = outcome.validation_report
    return IngestionResponse(
        success=True,
        metric_points_count=outcome.metric_points_count,
        file_id=outcome.file_id,
        validation_report=ValidationReportResponse(
            file_id=report.file_id,
            detected_periods=report.detected_periods,
            row_count=report.row_count,
            ignored_rows=report.ignored_rows,
            column_mapping=ColumnMappingResponse(**report.column_mapping),
            warnings=report.warnings,
        ),
    )
