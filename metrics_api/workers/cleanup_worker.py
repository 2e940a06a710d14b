"""Limpieza por retención.

Descarta de cada serie en memoria los puntos con timestamp estrictamente
anterior a `now - retention` y borra el mismo rango de las claves
persistidas (series crudas y filas de rollup). Cada clave se aísla.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..aggregation import AggregationKind
from ..core.clock import Clock, now_ms
from ..core.domain import DEFAULT_WINDOWS, parse_windows
from ..core.monitoring import EngineStats
from ..core.store import MetricStore, aggregated_key, series_key
from ..registry.registry import MetricRegistry
from .periodic import PeriodicWorker

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL = 3600.0


@dataclass
class CleanupResult:
    timestamp: int
    cutoff: int
    points_evicted: int = 0
    rows_deleted: int = 0
    failures: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "cutoff": self.cutoff,
            "points_evicted": self.points_evicted,
            "rows_deleted": self.rows_deleted,
            "failures": list(self.failures),
        }


class RetentionCleaner:
    def __init__(
        self,
        registry: MetricRegistry,
        store: Optional[MetricStore],
        stats: Optional[EngineStats] = None,
        retention_seconds: int = 7 * 24 * 60 * 60,
        windows: Iterable[str] = DEFAULT_WINDOWS,
        namespace: str = "",
        clock: Clock = now_ms,
    ):
        self._registry = registry
        self._store = store
        self._stats = stats or EngineStats()
        self._retention_ms = int(retention_seconds) * 1000
        self._windows = tuple(label for label, _ in parse_windows(windows))
        self._namespace = namespace
        self._clock = clock

    def run_once(self, now: Optional[int] = None) -> CleanupResult:
        now = now if now is not None else self._clock()
        cutoff = now - self._retention_ms
        result = CleanupResult(timestamp=now, cutoff=cutoff)

        for name, series in self._registry.all_series().items():
            result.points_evicted += series.evict_before(cutoff)
            if self._store is None:
                continue
            for key in self._keys_for(name):
                self._delete_key(key, cutoff, result)

        self._stats.incr("cleanup_runs")
        self._stats.incr("cleanup_points_evicted", result.points_evicted)
        self._stats.incr("cleanup_rows_deleted", result.rows_deleted)
        logger.info(
            "[CLEANUP] cutoff=%d evicted=%d deleted=%d failures=%d",
            cutoff, result.points_evicted, result.rows_deleted, len(result.failures),
        )
        return result

    def _keys_for(self, name: str) -> List[str]:
        keys = [series_key(name, self._namespace)]
        for kind in AggregationKind:
            for window in self._windows:
                keys.append(aggregated_key(name, kind.value, window, self._namespace))
        return keys

    def _delete_key(self, key: str, cutoff: int, result: CleanupResult) -> None:
        if cutoff <= 0:
            return
        try:
            result.rows_deleted += self._store.delete_range(key, 0, cutoff - 1)
        except Exception as e:
            result.failures.append(key)
            self._stats.incr("cleanup_failures")
            logger.warning("[CLEANUP] delete failed key=%s: %s", key, e)


class CleanupWorker(PeriodicWorker):
    name = "cleanup"

    def __init__(
        self,
        cleaner: RetentionCleaner,
        interval_seconds: float = DEFAULT_CLEANUP_INTERVAL,
        stats: Optional[EngineStats] = None,
    ):
        super().__init__(interval_seconds, stats)
        self._cleaner = cleaner
        self.last_result: Optional[CleanupResult] = None

    def run_once(self) -> CleanupResult:
        self.last_result = self._cleaner.run_once()
        return self.last_result
