"""
tests/test_metric_point_repository.py

Pytest tests for MetricPointRepository and FileUploadRepository against an
in-memory SQLite metric store.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.domain.metric_ingestion import MetricPointInput
from app.repositories.metric_point_repository import MetricPointRepository
from app.services.metric_store_service import MetricStoreService
from db.models.file_upload import FileUpload
from db.models.metric_point import MetricPoint
from db.repositories.errors import FileUploadNotFoundError
from db.repositories.file_upload_repository import FileUploadRepository


def _point(period: str, value: float, *, source: str = "BREAKDOWN", group_a: str | None = None) -> MetricPointInput:
    return MetricPointInput(period=period, metric="NDI", source=source, value=value, group_a=group_a)


def _count(session: Session) -> int:
    return session.scalar(select(func.count()).select_from(MetricPoint))


def test_upsert_writes_in_batches(session: Session) -> None:
    repository = MetricPointRepository(session)
    points = [_point("2024Q1", float(i), group_a=f"G{i}") for i in range(5)]

    written = repository.upsert(points, batch_size=2)
    session.commit()

    assert written == 5
    assert _count(session) == 5


def test_upsert_empty_is_noop(session: Session) -> None:
    assert MetricPointRepository(session).upsert([]) == 0


def test_query_orders_groups_with_nulls_last(session: Session) -> None:
    repository = MetricPointRepository(session)
    repository.upsert(
        [
            _point("2024Q2", 1.0, group_a="B"),
            _point("2024Q2", 2.0, group_a=None),
            _point("2024Q2", 3.0, group_a="A"),
            _point("2024Q1", 4.0, group_a="A"),
        ]
    )
    session.commit()

    rows = repository.query_by_period_and_metric("2024Q2", "NDI")

    assert [row.group_a for row in rows] == ["A", "B", None]


def test_clear_period_deletes_only_that_period_and_deactivates_uploads(session: Session) -> None:
    uploads = FileUploadRepository(session)
    q4_upload = uploads.create(upload_id=uuid.uuid4(), kind="BREAKDOWN", original_name="q4.xlsx", periods=["2024Q4"])
    q3_upload = uploads.create(upload_id=uuid.uuid4(), kind="BREAKDOWN", original_name="q3.xlsx", periods=["2024Q3"])
    repository = MetricPointRepository(session)
    repository.upsert([_point("2024Q4", 60.0), _point("2024Q4", 61.0), _point("2024Q3", 59.0)])
    session.commit()

    deleted = MetricStoreService(session).clear_period("2024Q4", "NDI")

    assert deleted == 2
    assert _count(session) == 1
    session.refresh(q4_upload)
    session.refresh(q3_upload)
    assert q4_upload.active is False
    assert q3_upload.active is True


def test_clear_period_with_source_keeps_other_kind(session: Session) -> None:
    repository = MetricPointRepository(session)
    repository.upsert([_point("2024Q4", 60.0), _point("2024Q4", 64.0, source="AGGREGATED")])
    session.commit()

    deleted = MetricStoreService(session).clear_period("2024Q4", "NDI", source="AGGREGATED")

    assert deleted == 1
    remaining = repository.query_by_period_and_metric("2024Q4", "NDI")
    assert [row.source for row in remaining] == ["BREAKDOWN"]


def test_clear_unknown_period_returns_zero(session: Session) -> None:
    assert MetricStoreService(session).clear_period("1999Q1", "NDI") == 0


def test_latest_period_and_aggregated_value(session: Session) -> None:
    repository = MetricPointRepository(session)
    assert repository.latest_period("NDI") is None

    repository.upsert(
        [
            _point("2023Q4", 58.0, source="AGGREGATED"),
            _point("2024Q2", 64.0, source="AGGREGATED"),
            _point("2024Q2", 66.0, source="AGGREGATED", group_a="Stockholm"),
        ]
    )
    session.commit()

    assert repository.latest_period("NDI") == "2024Q2"
    total = repository.aggregated_value("2024Q2", "NDI")
    assert total is not None
    assert total.value == pytest.approx(64.0)
    assert repository.aggregated_value("2024Q1", "NDI") is None


def test_file_upload_listing_and_soft_delete(session: Session) -> None:
    uploads = FileUploadRepository(session)
    first = uploads.create(upload_id=uuid.uuid4(), kind="AGGREGATED", original_name="a.xlsx", periods=["2024Q1"])
    uploads.create(upload_id=uuid.uuid4(), kind="BREAKDOWN", original_name="b.xlsx", periods=["2024Q1", "2024Q2"])
    session.commit()

    uploads.soft_delete(first.id)
    session.commit()

    assert [u.original_name for u in uploads.list_files()] == ["b.xlsx"]
    assert {u.original_name for u in uploads.list_files(active_only=False)} == {"a.xlsx", "b.xlsx"}
    assert [u.original_name for u in uploads.list_files(active_only=False, kind="AGGREGATED")] == ["a.xlsx"]
    assert session.get(FileUpload, first.id).active is False


def test_file_upload_get_unknown_raises(session: Session) -> None:
    with pytest.raises(FileUploadNotFoundError):
        FileUploadRepository(session).get(uuid.uuid4())
