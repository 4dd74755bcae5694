"""
app/validators/mapping_validator.py

Validation for spreadsheet column mapping resolution.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from app.domain.errors import MissingRequiredColumn

if TYPE_CHECKING:
    from app.mappers.column_mapper import ColumnMapping


class MappingValidator:
    """
    Validates resolved field-to-header mappings.
    """

    def __init__(self, *, required_fields: Sequence[str]) -> None:
        self._required_fields = tuple(required_fields)

    def validate(self, mapping: ColumnMapping) -> None:
        """
        Raise ``MissingRequiredColumn`` for the first unmapped required field.

        Wide sheets carry their values in the quarter columns, so nothing
        else is required of them.
        """

        if mapping.is_wide:
            return

        for required in self._required_fields:
            if required not in mapping.field_to_index:
                raise MissingRequiredColumn(required, mapping.headers)
