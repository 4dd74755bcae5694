"""
app/repositories package marker.
"""

from app.repositories.metric_point_repository import MetricPointRepository

__all__ = [
    "MetricPointRepository",
]
