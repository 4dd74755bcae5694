"""
app/schemas/files.py

Response schemas for uploaded file bookkeeping.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


class FileUploadResponse(CamelModel):
    id: UUID
    kind: str
    original_name: str
    uploaded_at: datetime
    periods: list[str] = Field(default_factory=list)
    active: bool


class FileListResponse(CamelModel):
    files: list[FileUploadResponse] = Field(default_factory=list)


class FileDeleteResponse(CamelModel):
    success: bool = True
    id: UUID
