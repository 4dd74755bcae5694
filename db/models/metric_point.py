"""
db/models/metric_point.py

MetricPoint model: one period-keyed metric value ingested from a spreadsheet.

Aggregated rows carry no group dimensions; breakdown rows are subdivided
by up to three categorical labels (group_a, group_b, group_c).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class MetricSource(str, enum.Enum):
    """Origin of a metric point; doubles as the upload file kind."""

    AGGREGATED = "AGGREGATED"
    BREAKDOWN = "BREAKDOWN"


class MetricKey(str, enum.Enum):
    """Metrics that can be ingested into the store."""

    NDI = "NDI"


class MetricPoint(Base):
    __tablename__ = "metric_points"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    period: Mapped[str] = mapped_column(
        String(6),
        nullable=False,
        comment="Canonical YYYYQn quarter token; sorts chronologically as a string",
    )
    metric: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=MetricKey.NDI.value,
    )
    source: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="AGGREGATED, BREAKDOWN",
    )
    group_a: Mapped[str | None] = mapped_column(String(255), nullable=True)
    group_b: Mapped[str | None] = mapped_column(String(255), nullable=True)
    group_c: Mapped[str | None] = mapped_column(String(255), nullable=True)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    weight: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
        comment="Respondent count used for weighted means",
    )
    file_upload_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        comment="Logical link to the upload that produced this row (no FK)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_metric_points_metric_period", "metric", "period"),
        Index("ix_metric_points_period_source", "period", "source"),
        Index(
            "ix_metric_points_breakdown_key",
            "period",
            "metric",
            "source",
            "group_a",
            "group_b",
            "group_c",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<MetricPoint period={self.period!r} metric={self.metric!r} "
            f"source={self.source!r} value={self.value!r}>"
        )
