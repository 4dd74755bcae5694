"""
app/repositories/metric_point_repository.py

Persistence layer for period-keyed metric points.

The repository never commits. Callers own the transaction so a period
clear and the insert that replaces it land together or not at all.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.metric_ingestion import MetricPointInput
from db.models.file_upload import FileUpload
from db.models.metric_point import MetricPoint, MetricSource
from db.repositories.errors import StorageError

_DEFAULT_BATCH_SIZE = 1000


class MetricPointRepository:
    """
    Repository for batch persistence and period queries of metric points.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def upsert(
        self,
        points: Sequence[MetricPointInput],
        *,
        file_upload_id: uuid.UUID | None = None,
        batch_size: int = _DEFAULT_BATCH_SIZE,
    ) -> int:
        """
        Bulk insert points in chunks and return the number written.

        No deduplication happens here; replacing a period means calling
        :meth:`clear_period` first in the same transaction.
        """

        if not points:
            return 0

        size = max(1, batch_size)
        payloads: list[dict[str, Any]] = [
            {
                "id": uuid.uuid4(),
                "period": point.period,
                "metric": point.metric,
                "source": point.source,
                "group_a": point.group_a,
                "group_b": point.group_b,
                "group_c": point.group_c,
                "value": point.value,
                "weight": point.weight,
                "file_upload_id": file_upload_id,
            }
            for point in points
        ]

        written = 0
        with _storage_errors("insert metric points"):
            for start in range(0, len(payloads), size):
                chunk = payloads[start : start + size]
                self._session.execute(insert(MetricPoint), chunk)
                written += len(chunk)
        return written

    def clear_period(self, period: str, metric: str, source: str | None = None) -> int:
        """
        Delete the period's points and deactivate the uploads that fed it.

        With ``source`` only that kind of rows (and uploads) is touched.
        Returns the number of deleted metric points.
        """

        stmt = delete(MetricPoint).where(
            MetricPoint.period == period,
            MetricPoint.metric == metric,
        )
        uploads = (
            update(FileUpload)
            .where(FileUpload.active.is_(True), FileUpload.period.contains(period))
            .values(active=False)
        )
        if source is not None:
            stmt = stmt.where(MetricPoint.source == source)
            uploads = uploads.where(FileUpload.kind == source)

        with _storage_errors("clear period"):
            result = self._session.execute(stmt.execution_options(synchronize_session=False))
            self._session.execute(uploads.execution_options(synchronize_session="fetch"))
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def query_by_period_and_metric(
        self,
        period: str,
        metric: str,
        source: str | None = None,
    ) -> list[MetricPoint]:
        """
        Return the period's points ordered by (group_a, group_b, group_c).
        """

        stmt = select(MetricPoint).where(
            MetricPoint.period == period,
            MetricPoint.metric == metric,
        )
        if source is not None:
            stmt = stmt.where(MetricPoint.source == source)
        return self._scalars(stmt.order_by(*_GROUP_ORDER))

    def list_breakdown(self, period: str, metric: str) -> list[MetricPoint]:
        return self.query_by_period_and_metric(period, metric, MetricSource.BREAKDOWN.value)

    def list_series_points(self, metric: str, source: str | None = None) -> list[MetricPoint]:
        """
        Return every point of a metric ordered by period, then groups.
        """

        stmt = select(MetricPoint).where(MetricPoint.metric == metric)
        if source is not None:
            stmt = stmt.where(MetricPoint.source == source)
        return self._scalars(stmt.order_by(MetricPoint.period.asc(), *_GROUP_ORDER))

    def latest_period(self, metric: str) -> str | None:
        """
        Most recent period with data; canonical tokens sort chronologically.
        """

        stmt = (
            select(MetricPoint.period)
            .where(MetricPoint.metric == metric)
            .order_by(MetricPoint.period.desc())
            .limit(1)
        )
        with _storage_errors("read latest period"):
            return self._session.scalar(stmt)

    def aggregated_value(self, period: str, metric: str) -> MetricPoint | None:
        """
        The period total: an aggregated row with no group dimensions.
        """

        stmt = (
            select(MetricPoint)
            .where(
                MetricPoint.period == period,
                MetricPoint.metric == metric,
                MetricPoint.source == MetricSource.AGGREGATED.value,
                MetricPoint.group_a.is_(None),
                MetricPoint.group_b.is_(None),
                MetricPoint.group_c.is_(None),
            )
            .order_by(MetricPoint.created_at.desc())
            .limit(1)
        )
        with _storage_errors("read aggregated value"):
            return self._session.scalar(stmt)

    def _scalars(self, stmt: Any) -> list[MetricPoint]:
        with _storage_errors("query metric points"):
            return list(self._session.scalars(stmt).all())


# NULL placement differs between backends; pin it so ordering is portable.
_GROUP_ORDER = (
    MetricPoint.group_a.asc().nulls_last(),
    MetricPoint.group_b.asc().nulls_last(),
    MetricPoint.group_c.asc().nulls_last(),
)


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"Metric store failed to {action}.") from exc
