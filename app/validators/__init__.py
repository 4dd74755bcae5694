"""
app/validators package marker.
"""

from app.validators.mapping_validator import MappingValidator
from app.validators.row_validator import MetricRowValidator

__all__ = [
    "MappingValidator",
    "MetricRowValidator",
]
