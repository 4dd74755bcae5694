"""
File upload repository responsible for upload bookkeeping rows.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.file_upload import FileUpload
from db.repositories.errors import FileUploadNotFoundError, StorageError
from db.repositories.types import StoredFileMetadata


class FileUploadRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(
        self,
        *,
        upload_id: uuid.UUID,
        kind: str,
        original_name: str,
        stored_file: StoredFileMetadata | None = None,
        periods: Sequence[str] = (),
    ) -> FileUpload:
        upload = FileUpload(
            id=upload_id,
            kind=kind,
            original_name=original_name,
            stored_path=stored_file.storage_path if stored_file else None,
            period=_join_periods(periods),
            active=True,
        )
        self._session.add(upload)
        return upload

    def get(self, upload_id: uuid.UUID) -> FileUpload:
        try:
            upload = self._session.get(FileUpload, upload_id)
        except SQLAlchemyError as exc:
            raise StorageError("Failed to load file upload.") from exc
        if upload is None:
            raise FileUploadNotFoundError(f"File upload not found: {upload_id}")
        return upload

    def list_files(self, *, active_only: bool = True, kind: str | None = None) -> list[FileUpload]:
        """
        Uploads, newest first.
        """

        stmt = select(FileUpload)
        if active_only:
            stmt = stmt.where(FileUpload.active.is_(True))
        if kind is not None:
            stmt = stmt.where(FileUpload.kind == kind)
        stmt = stmt.order_by(FileUpload.uploaded_at.desc(), FileUpload.original_name.asc())
        try:
            return list(self._session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise StorageError("Failed to list file uploads.") from exc

    def soft_delete(self, upload_id: uuid.UUID) -> FileUpload:
        upload = self.get(upload_id)
        upload.active = False
        return upload


def _join_periods(periods: Sequence[str]) -> str | None:
    return ",".join(periods) if periods else None
