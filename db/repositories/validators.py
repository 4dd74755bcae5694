"""
Validation helpers for spreadsheet upload flows.
"""

from __future__ import annotations

import os
from pathlib import Path

from db.models.metric_point import MetricSource
from db.repositories.errors import UploadValidationError
from db.repositories.types import UploadFileInput

ALLOWED_EXTENSIONS = {".csv", ".xlsx", ".xlsm"}
ALLOWED_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "text/plain",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel.sheet.macroenabled.12",
    "application/octet-stream",
}
_DEFAULT_MAX_BYTES = 20 * 1024 * 1024


def max_upload_size_bytes() -> int:
    value = os.getenv("UPLOAD_MAX_BYTES")
    if value is None:
        return _DEFAULT_MAX_BYTES
    try:
        return int(value)
    except ValueError:
        return _DEFAULT_MAX_BYTES


def validate_upload_payload(payload: UploadFileInput) -> None:
    """
    Validate a spreadsheet upload before storage and parsing.
    """

    if not payload.file_name or not payload.file_name.strip():
        raise UploadValidationError("file_name is required.")

    extension = Path(payload.file_name).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise UploadValidationError(
            f"Unsupported file type '{extension}'. Allowed: {sorted(ALLOWED_EXTENSIONS)}."
        )

    if payload.content_type and payload.content_type.lower() not in ALLOWED_CONTENT_TYPES:
        raise UploadValidationError(f"Unsupported content_type '{payload.content_type}'.")

    if payload.kind not in {source.value for source in MetricSource}:
        raise UploadValidationError(
            f"Invalid file kind '{payload.kind}'. Allowed: AGGREGATED, BREAKDOWN."
        )

    if not payload.content:
        raise UploadValidationError("Uploaded file content is empty.")

    if len(payload.content) > max_upload_size_bytes():
        raise UploadValidationError("Uploaded file exceeds configured size limit.")
