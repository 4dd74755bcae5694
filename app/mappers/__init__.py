"""
app/mappers package marker.
"""

from app.mappers.column_mapper import (
    DEFAULT_COLUMN_ALIASES,
    LOGICAL_FIELDS,
    REQUIRED_FIELDS,
    ColumnMapping,
    QuarterColumn,
    resolve_column_mapping,
)

__all__ = [
    "DEFAULT_COLUMN_ALIASES",
    "LOGICAL_FIELDS",
    "REQUIRED_FIELDS",
    "ColumnMapping",
    "QuarterColumn",
    "resolve_column_mapping",
]
