"""
app/api/routers/files.py

Uploaded file listing and soft delete.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.dependencies import require_section
from app.schemas.common import ErrorResponse
from app.schemas.files import FileDeleteResponse, FileListResponse, FileUploadResponse
from app.services.metric_store_service import MetricStoreService
from db.models.file_upload import FileUpload
from db.models.metric_point import MetricSource
from db.repositories.errors import FileUploadNotFoundError, StorageError
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["files"],
    dependencies=[Depends(require_section("ndi"))],
    responses={500: {"model": ErrorResponse}},
)


def _to_response(upload: FileUpload) -> FileUploadResponse:
    return FileUploadResponse(
        id=upload.id,
        kind=upload.kind,
        original_name=upload.original_name,
        uploaded_at=upload.uploaded_at,
        periods=[p for p in (upload.period or "").split(",") if p],
        active=upload.active,
    )


@router.get("/files", response_model=FileListResponse)
def list_files(
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    kind: MetricSource | None = Query(default=None),
    db: Session = Depends(get_db),
) -> FileListResponse:
    try:
        uploads = MetricStoreService(db).list_files(
            active_only=not include_inactive,
            kind=kind.value if kind is not None else None,
        )
    except StorageError as exc:
        logger.exception("Listing file uploads failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to list files.", "code": "storage_error"},
        ) from exc
    return FileListResponse(files=[_to_response(upload) for upload in uploads])


@router.delete(
    "/files/{file_id}",
    response_model=FileDeleteResponse,
    responses={404: {"model": ErrorResponse}},
)
def delete_file(file_id: UUID, db: Session = Depends(get_db)) -> FileDeleteResponse:
    """
    Mark an upload inactive. Metric points it produced are kept.
    """

    try:
        upload = MetricStoreService(db).deactivate_file(file_id)
    except FileUploadNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StorageError as exc:
        logger.exception("Deactivating file upload failed id=%s", file_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to delete file.", "code": "storage_error"},
        ) from exc
    return FileDeleteResponse(success=True, id=upload.id)
