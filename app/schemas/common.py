"""
app/schemas/common.py

Shared schema base classes and the error envelope.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Serializes field names as camelCase; accepts either spelling on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(CamelModel):
    success: bool = False
    error: str
    code: str | None = None
