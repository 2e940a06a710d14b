from .models import AggregatedMetric, AggregationKind, RollupResult
from .engine import AggregationEngine, DEFAULT_PERCENTILES

__all__ = [
    "AggregatedMetric",
    "AggregationKind",
    "RollupResult",
    "AggregationEngine",
    "DEFAULT_PERCENTILES",
]
