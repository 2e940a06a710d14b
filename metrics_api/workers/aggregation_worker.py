from __future__ import annotations

from typing import Optional

from ..aggregation import AggregationEngine, RollupResult
from ..core.monitoring import EngineStats
from .periodic import PeriodicWorker

DEFAULT_AGGREGATION_INTERVAL = 60.0


class AggregationWorker(PeriodicWorker):
    """Dispara el rollup del AggregationEngine cada `interval_seconds`."""

    name = "aggregation"

    def __init__(
        self,
        engine: AggregationEngine,
        interval_seconds: float = DEFAULT_AGGREGATION_INTERVAL,
        stats: Optional[EngineStats] = None,
    ):
        super().__init__(interval_seconds, stats)
        self._engine = engine
        self.last_result: Optional[RollupResult] = None

    def run_once(self) -> RollupResult:
        self.last_result = self._engine.run_once()
        return self.last_result
