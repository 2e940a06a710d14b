"""Workers de fondo: rollup periódico y limpieza por retención."""

from .periodic import PeriodicWorker
from .aggregation_worker import AggregationWorker, DEFAULT_AGGREGATION_INTERVAL
from .cleanup_worker import (
    CleanupResult,
    CleanupWorker,
    DEFAULT_CLEANUP_INTERVAL,
    RetentionCleaner,
)

__all__ = [
    "PeriodicWorker",
    "AggregationWorker",
    "CleanupWorker",
    "CleanupResult",
    "RetentionCleaner",
    "DEFAULT_AGGREGATION_INTERVAL",
    "DEFAULT_CLEANUP_INTERVAL",
]
