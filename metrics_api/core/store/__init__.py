"""Store layer - Persistencia externa de series y rollups."""

from .base import MetricStore
from .keys import aggregated_key, definitions_key, series_key
from .memory import InMemoryMetricStore

__all__ = [
    "MetricStore",
    "InMemoryMetricStore",
    "aggregated_key",
    "definitions_key",
    "series_key",
]
