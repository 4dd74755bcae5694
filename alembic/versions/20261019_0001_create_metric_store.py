"""create file_uploads and metric_points tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "file_uploads",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False, comment="AGGREGATED, BREAKDOWN"),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column(
            "stored_path",
            sa.String(length=1024),
            nullable=True,
            comment="Storage-relative path of the raw upload",
        ),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column(
            "period",
            sa.String(length=255),
            nullable=True,
            comment="Comma-joined detected periods, e.g. 2024Q3,2024Q4",
        ),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_file_uploads"),
    )
    op.create_index("ix_file_uploads_active", "file_uploads", ["active"], unique=False)
    op.create_index("ix_file_uploads_kind_active", "file_uploads", ["kind", "active"], unique=False)

    op.create_table(
        "metric_points",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "period",
            sa.String(length=6),
            nullable=False,
            comment="Canonical YYYYQn quarter token; sorts chronologically as a string",
        ),
        sa.Column("metric", sa.String(length=32), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False, comment="AGGREGATED, BREAKDOWN"),
        sa.Column("group_a", sa.String(length=255), nullable=True),
        sa.Column("group_b", sa.String(length=255), nullable=True),
        sa.Column("group_c", sa.String(length=255), nullable=True),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=True, comment="Respondent count used for weighted means"),
        sa.Column(
            "file_upload_id",
            sa.Uuid(as_uuid=True),
            nullable=True,
            comment="Logical link to the upload that produced this row (no FK)",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_metric_points"),
    )
    op.create_index("ix_metric_points_metric_period", "metric_points", ["metric", "period"], unique=False)
    op.create_index("ix_metric_points_period_source", "metric_points", ["period", "source"], unique=False)
    op.create_index(
        "ix_metric_points_breakdown_key",
        "metric_points",
        ["period", "metric", "source", "group_a", "group_b", "group_c"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_metric_points_breakdown_key", table_name="metric_points")
    op.drop_index("ix_metric_points_period_source", table_name="metric_points")
    op.drop_index("ix_metric_points_metric_period", table_name="metric_points")
    op.drop_table("metric_points")
    op.drop_index("ix_file_uploads_kind_active", table_name="file_uploads")
    op.drop_index("ix_file_uploads_active", table_name="file_uploads")
    op.drop_table("file_uploads")
