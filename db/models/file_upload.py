"""
db/models/file_upload.py

FileUpload model: one spreadsheet uploaded for ingestion.

Uploads are soft-deleted by flipping ``active``, either directly or when
a period clear removes the metric points they produced.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin
from db.models.metric_point import MetricSource


class FileUpload(Base, TimestampMixin):
    """
    Bookkeeping row for an uploaded file.

    ``period`` holds the comma-joined periods detected in the file so the
    period clear can find the uploads that fed a given quarter.
    """

    __tablename__ = "file_uploads"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    kind: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=MetricSource.BREAKDOWN.value,
        comment="AGGREGATED, BREAKDOWN",
    )

    original_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    stored_path: Mapped[str | None] = mapped_column(
        String(1024),
        nullable=True,
        comment="Storage-relative path of the raw upload",
    )

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    period: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Comma-joined detected periods, e.g. 2024Q3,2024Q4",
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    __table_args__ = (
        Index("ix_file_uploads_active", "active"),
        Index("ix_file_uploads_kind_active", "kind", "active"),
    )

    def __repr__(self) -> str:
        return (
            f"<FileUpload id={self.id} name={self.original_name!r} "
            f"kind={self.kind!r} active={self.active}>"
        )
