"""
app/services/metric_ingestion_service.py

Service layer for the upload -> parse -> store workflow.

Order of operations for one upload:

    1. validate the payload (name, extension, size, kind)
    2. parse under a wall-clock budget; a parse that overruns is abandoned
    3. store the raw file
    4. one transaction: clear each detected period for this kind, record
       the upload, insert the new points

Nothing is written before step 3, so any parse failure or timeout leaves
the store untouched. A failure in step 4 removes the stored file again.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import lru_cache

from sqlalchemy.orm import Session

from app.config import get_ingestion_settings
from app.domain.errors import ParseTimeout
from app.domain.metric_ingestion import IngestionOutcome, ParsedSpreadsheet
from app.domain.period import require_period
from app.services.metric_store_service import MetricStoreService
from app.services.spreadsheet_ingestor import SpreadsheetIngestor
from db.models.metric_point import MetricKey, MetricSource
from db.repositories.errors import FileStorageError
from db.repositories.storage import FileStorageBackend, LocalFileStorage
from db.repositories.types import UploadFileInput
from db.repositories.validators import validate_upload_payload

logger = logging.getLogger(__name__)


class MetricIngestionService:
    """
    Coordinates upload validation, timed parsing, file storage and persistence.
    """

    def __init__(
        self,
        *,
        parse_timeout_seconds: float,
        batch_size: int,
        ingestor: SpreadsheetIngestor | None = None,
        storage_backend: FileStorageBackend | None = None,
    ) -> None:
        self._parse_timeout_seconds = parse_timeout_seconds
        self._batch_size = max(1, batch_size)
        self._ingestor = ingestor or SpreadsheetIngestor()
        self._storage_backend = storage_backend or LocalFileStorage()

    def ingest(
        self,
        *,
        db: Session,
        file_name: str,
        content: bytes,
        kind: str,
        content_type: str | None = None,
        period: str | None = None,
        metric: str = MetricKey.NDI.value,
    ) -> IngestionOutcome:
        """
        Ingest one uploaded spreadsheet.

        Raises ``UploadValidationError``, ``InvalidPeriodFormat``, any
        ``IngestionError`` from parsing, ``FileStorageError`` or
        ``StorageError``.
        """

        validate_upload_payload(
            UploadFileInput(file_name=file_name, content=content, kind=kind, content_type=content_type)
        )
        source = MetricSource(kind).value
        default_period = require_period(period) if period else None
        file_id = uuid.uuid4()

        parsed = self._parse_with_timeout(
            content=content,
            file_id=file_id,
            kind=source,
            file_name=file_name,
            default_period=default_period,
            metric=metric,
        )
        report = parsed.validation_report

        if not parsed.metric_points:
            logger.warning("Upload file_id=%s name=%r had no valid rows; nothing stored.", file_id, file_name)
            return IngestionOutcome(
                file_id=file_id,
                metric_points_count=0,
                deleted_rows=0,
                validation_report=report,
            )

        stored = self._storage_backend.save(
            kind=source,
            file_name=file_name,
            content=content,
            content_type=content_type,
        )
        try:
            inserted, deleted = MetricStoreService(db, batch_size=self._batch_size).replace_periods(
                upload_id=file_id,
                points=parsed.metric_points,
                periods=report.detected_periods,
                kind=source,
                metric=metric,
                original_name=file_name,
                stored_file=stored,
            )
        except Exception:
            self._delete_stored_file_quietly(stored.storage_path)
            raise

        logger.info(
            "Ingested upload file_id=%s name=%r kind=%s inserted=%d replaced=%d warnings=%d",
            file_id,
            file_name,
            source,
            inserted,
            deleted,
            len(report.warnings),
        )
        return IngestionOutcome(
            file_id=file_id,
            metric_points_count=inserted,
            deleted_rows=deleted,
            validation_report=report,
        )

    def _parse_with_timeout(
        self,
        *,
        content: bytes,
        file_id: uuid.UUID,
        kind: str,
        file_name: str,
        default_period: str | None,
        metric: str,
    ) -> ParsedSpreadsheet:
        """
        Race the parse against the timeout; the first to finish decides.

        An overrunning parse thread cannot be killed. It is left to finish
        in the background and its result is discarded.
        """

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="spreadsheet-parse")
        future = executor.submit(
            self._ingestor.parse,
            content,
            file_id,
            kind,
            file_name=file_name,
            default_period=default_period,
            metric=metric,
        )
        try:
            return future.result(timeout=self._parse_timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            logger.error(
                "Parse timeout file_id=%s name=%r after %.1fs",
                file_id,
                file_name,
                self._parse_timeout_seconds,
            )
            raise ParseTimeout(self._parse_timeout_seconds) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _delete_stored_file_quietly(self, storage_path: str) -> None:
        try:
            self._storage_backend.delete(storage_path=storage_path)
        except FileStorageError:
            logger.warning("Could not remove stored upload %s after failed ingestion.", storage_path)


@lru_cache(maxsize=1)
def get_metric_ingestion_service() -> MetricIngestionService:
    """
    Return cached ingestion service configured from environment.
    """

    settings = get_ingestion_settings()
    return MetricIngestionService(
        parse_timeout_seconds=settings.parse_timeout_seconds,
        batch_size=settings.batch_size,
        ingestor=SpreadsheetIngestor(
            max_warnings=settings.max_warnings,
            log_row_warnings=settings.log_row_warnings,
        ),
        storage_backend=LocalFileStorage(settings.storage_dir),
    )
