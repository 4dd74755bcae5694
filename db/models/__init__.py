"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.file_upload import FileUpload
from db.models.metric_point import MetricKey, MetricPoint, MetricSource

__all__ = [
    "FileUpload",
    "MetricKey",
    "MetricPoint",
    "MetricSource",
]
