"""Motor de agregación: rollups por ventana y consultas síncronas.

Un rollup es lectura pura del buffer (snapshot) seguida de escrituras al
store. Cada (métrica, ventana) se aísla: un fallo del store se loguea, se
cuenta y el resto de ventanas y métricas continúan.
"""

from __future__ import annotations

import logging
import sys
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.clock import Clock, now_ms
from ..core.domain import DEFAULT_WINDOWS, MetricKind, MetricPoint, parse_windows
from ..core.monitoring import EngineStats
from ..core.store import MetricStore, aggregated_key
from ..registry.registry import MetricRegistry
from . import calculations
from .models import AggregatedMetric, AggregationKind, RollupResult

logger = logging.getLogger(__name__)

DEFAULT_PERCENTILES = (50, 95, 99)
_MAX_SCORE = sys.maxsize


class AggregationEngine:
    def __init__(
        self,
        registry: MetricRegistry,
        store: MetricStore,
        stats: Optional[EngineStats] = None,
        windows: Iterable[str] = DEFAULT_WINDOWS,
        retention_seconds: int = 7 * 24 * 60 * 60,
        namespace: str = "",
        clock: Clock = now_ms,
    ):
        self._registry = registry
        self._store = store
        self._stats = stats or EngineStats()
        self._windows: Tuple[Tuple[str, int], ...] = parse_windows(windows)
        self._retention_seconds = retention_seconds
        self._namespace = namespace
        self._clock = clock

    @property
    def windows(self) -> List[str]:
        return [label for label, _ in self._windows]

    # Scheduled rollup

    def run_once(self, now: Optional[int] = None) -> RollupResult:
        """Una pasada de rollup sobre todas las métricas registradas."""
        now = now if now is not None else self._clock()
        result = RollupResult(timestamp=now)

        for name, series in self._registry.all_series().items():
            try:
                snapshot = series.snapshot()
                if not snapshot:
                    continue
                result.metrics_processed += 1
                self._rollup_metric(name, snapshot, now, result)
            except Exception as e:
                # Safety net: window failures are already isolated below.
                result.failures.append(f"{name}:*")
                self._stats.incr("rollup_failures")
                logger.exception("[ROLLUP] metric=%s failed: %s", name, e)

        self._stats.incr("rollup_runs")
        self._stats.incr("rollup_rows_written", result.rows_written)
        logger.info(
            "[ROLLUP] done metrics=%d rows=%d skipped=%d failures=%d",
            result.metrics_processed,
            result.rows_written,
            result.windows_skipped,
            result.failed,
        )
        return result

    def _rollup_metric(
        self,
        name: str,
        snapshot: Sequence[MetricPoint],
        now: int,
        result: RollupResult,
    ) -> None:
        for window, window_ms in self._windows:
            start = now - window_ms
            points = [p for p in snapshot if start <= p.timestamp]
            if not points:
                result.windows_skipped += 1
                continue

            rows = [
                AggregatedMetric(
                    metric=name,
                    aggregation=kind,
                    window=window,
                    value=value,
                    timestamp=now,
                )
                for kind, value in calculations.aggregate(points).items()
            ]
            try:
                result.rows_written += self._persist(rows)
            except Exception as e:
                result.failures.append(f"{name}:{window}")
                self._stats.incr("rollup_failures")
                logger.warning(
                    "[ROLLUP] persist failed metric=%s window=%s: %s", name, window, e
                )

    def _persist(self, rows: Sequence[AggregatedMetric]) -> int:
        written = 0
        for row in rows:
            key = aggregated_key(row.metric, row.aggregation.value, row.window, self._namespace)
            self._store.append(key, row.timestamp, row.to_dict())
            self._store.expire(key, self._retention_seconds)
            written += 1
        return written

    # On-demand queries

    def calculate_percentiles(
        self,
        metric_name: str,
        percentiles: Iterable[float] = DEFAULT_PERCENTILES,
        time_range: Optional[Tuple[int, int]] = None,
    ) -> Dict[float, float]:
        """Percentiles nearest-rank sobre el buffer (o el rango [start, end])."""
        series = self._registry.series(metric_name)
        if time_range is not None:
            start, end = time_range
            points = series.points_between(start, end)
        else:
            points = series.snapshot()
        return calculations.percentiles((p.value for p in points), percentiles)

    def calculate_rate(
        self,
        metric_name: str,
        window_ms: int = 60_000,
        now: Optional[int] = None,
    ) -> float:
        """Tasa de cambio por segundo en la ventana; 0.0 con menos de 2 puntos."""
        now = now if now is not None else self._clock()
        points = self._registry.series(metric_name).points_since(now - window_ms)
        return calculations.rate(points)

    def get_aggregated_metrics(
        self,
        metric_name: str,
        aggregation: AggregationKind,
        window: str,
        labels: Optional[Mapping[str, object]] = None,
        limit: int = 100,
    ) -> List[AggregatedMetric]:
        """Lee del store las últimas `limit` filas de rollup."""
        self._registry.lookup(metric_name)
        aggregation = AggregationKind(aggregation)
        key = aggregated_key(metric_name, aggregation.value, window, self._namespace)
        if limit <= 0:
            return []
        raw = self._store.range_query(key, 0, _MAX_SCORE)
        rows = [
            AggregatedMetric.from_dict(item, metric_name, aggregation, window)
            for item in raw
        ]
        if labels:
            rows = [r for r in rows if _labels_match(r.labels, labels)]
        return rows[-limit:]

    def histogram_buckets(
        self,
        metric_name: str,
        time_range: Optional[Tuple[int, int]] = None,
    ) -> List[Tuple[float, int]]:
        """Cuentas acumuladas por bucket `le` (incluye +Inf).

        Solo para histogramas; otras métricas devuelven lista vacía.
        """
        definition = self._registry.lookup(metric_name)
        if definition.kind != MetricKind.HISTOGRAM:
            return []
        series = self._registry.series(metric_name)
        if time_range is not None:
            points = series.points_between(*time_range)
        else:
            points = series.snapshot()
        values = [p.value for p in points]
        bounds = list(definition.buckets) + [float("inf")]
        return [(le, sum(1 for v in values if v <= le)) for le in bounds]


def _labels_match(have: Mapping[str, object], want: Mapping[str, object]) -> bool:
    return all(have.get(k) == v for k, v in want.items())
