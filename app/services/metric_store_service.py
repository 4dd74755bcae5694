"""
app/services/metric_store_service.py

Transactional writes against the metric store.

Repositories never commit; every public method here runs in one
transaction so a period is never left half-replaced.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.metric_ingestion import MetricPointInput
from app.repositories.metric_point_repository import MetricPointRepository
from db.models.file_upload import FileUpload
from db.repositories.errors import StorageError
from db.repositories.file_upload_repository import FileUploadRepository
from db.repositories.types import StoredFileMetadata

logger = logging.getLogger(__name__)


class MetricStoreService:
    """
    Replaces, clears and deactivates stored metric data.
    """

    def __init__(self, session: Session, *, batch_size: int = 1000) -> None:
        self._session = session
        self._points = MetricPointRepository(session)
        self._uploads = FileUploadRepository(session)
        self._batch_size = max(1, batch_size)

    def replace_periods(
        self,
        *,
        upload_id: uuid.UUID,
        points: Sequence[MetricPointInput],
        periods: Sequence[str],
        kind: str,
        metric: str,
        original_name: str,
        stored_file: StoredFileMetadata | None = None,
    ) -> tuple[int, int]:
        """
        Clear every period of the upload for this kind, record the upload,
        and insert the new points. Returns ``(inserted, deleted)``.
        """

        with self._transaction():
            deleted = sum(self._points.clear_period(period, metric, source=kind) for period in periods)
            self._uploads.create(
                upload_id=upload_id,
                kind=kind,
                original_name=original_name,
                stored_file=stored_file,
                periods=periods,
            )
            inserted = self._points.upsert(points, file_upload_id=upload_id, batch_size=self._batch_size)

        logger.info(
            "Replaced metric periods upload_id=%s kind=%s periods=%s deleted=%d inserted=%d",
            upload_id,
            kind,
            ",".join(periods),
            deleted,
            inserted,
        )
        return inserted, deleted

    def clear_period(self, period: str, metric: str, source: str | None = None) -> int:
        with self._transaction():
            deleted = self._points.clear_period(period, metric, source=source)
        logger.info("Cleared period=%s metric=%s source=%s deleted=%d", period, metric, source or "*", deleted)
        return deleted

    def list_files(self, *, active_only: bool = True, kind: str | None = None) -> list[FileUpload]:
        return self._uploads.list_files(active_only=active_only, kind=kind)

    def deactivate_file(self, upload_id: uuid.UUID) -> FileUpload:
        """
        Soft delete one upload. Its metric points stay until a re-upload
        or period clear replaces them.
        """

        with self._transaction():
            upload = self._uploads.soft_delete(upload_id)
        logger.info("Deactivated file upload id=%s", upload_id)
        return upload

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        context = self._session.begin_nested() if self._session.in_transaction() else self._session.begin()
        try:
            with context:
                yield
        except SQLAlchemyError as exc:
            raise StorageError("Metric store transaction failed.") from exc
