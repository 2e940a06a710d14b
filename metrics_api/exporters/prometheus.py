"""Exportación Prometheus con prometheus_client.

`EngineCollector` traduce el estado del motor a familias de métricas en cada
scrape; se registra en un CollectorRegistry privado, separado del registro
global del proceso. Métricas sin puntos se omiten.

- gauge: último valor por combinación de labels
- counter: suma de deltas por combinación de labels
- histogram / summary: agregados sobre toda la serie, sin labels
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterator, List, Sequence, Tuple

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    HistogramMetricFamily,
    Metric,
    SummaryMetricFamily,
)
from prometheus_client.utils import floatToGoString

from ..core.domain import MetricDefinition, MetricKind, MetricPoint

if TYPE_CHECKING:
    from ..engine import MetricsEngine

CONTENT_TYPE = CONTENT_TYPE_LATEST


def _seconds(timestamp_ms: int) -> float:
    return timestamp_ms / 1000.0


def _group_by_labels(
    definition: MetricDefinition, points: Sequence[MetricPoint]
) -> Dict[Tuple[str, ...], List[MetricPoint]]:
    """Agrupa por valores de label en el orden de label_names ("" si falta)."""
    groups: Dict[Tuple[str, ...], List[MetricPoint]] = {}
    for point in points:
        key = tuple(str(point.labels.get(name, "")) for name in definition.label_names)
        groups.setdefault(key, []).append(point)
    return groups


class EngineCollector:
    """Collector custom: lee el motor en cada llamada a collect()."""

    def __init__(self, engine: "MetricsEngine"):
        self._engine = engine

    def collect(self) -> Iterator[Metric]:
        for definition in self._engine.list_definitions():
            points = self._engine.get_series(definition.name)
            if not points:
                continue
            if definition.kind == MetricKind.COUNTER:
                yield self._counter(definition, points)
            elif definition.kind == MetricKind.HISTOGRAM:
                yield self._histogram(definition, points)
            elif definition.kind == MetricKind.SUMMARY:
                yield self._summary(definition, points)
            else:
                yield self._gauge(definition, points)

    def _gauge(self, definition, points):
        family = GaugeMetricFamily(
            definition.name, definition.description, labels=definition.label_names
        )
        for label_values, group in _group_by_labels(definition, points).items():
            latest = group[-1]
            family.add_metric(
                list(label_values), latest.value, timestamp=_seconds(latest.timestamp)
            )
        return family

    def _counter(self, definition, points):
        family = CounterMetricFamily(
            definition.name, definition.description, labels=definition.label_names
        )
        for label_values, group in _group_by_labels(definition, points).items():
            family.add_metric(
                list(label_values),
                sum(p.value for p in group),
                timestamp=_seconds(group[-1].timestamp),
            )
        return family

    def _histogram(self, definition, points):
        family = HistogramMetricFamily(definition.name, definition.description, labels=[])
        buckets = [
            (floatToGoString(le), count)
            for le, count in self._engine.histogram_buckets(definition.name)
        ]
        family.add_metric(
            [],
            buckets,
            sum(p.value for p in points),
            timestamp=_seconds(points[-1].timestamp),
        )
        return family

    def _summary(self, definition, points):
        family = SummaryMetricFamily(definition.name, definition.description, labels=[])
        family.add_metric(
            [],
            count_value=len(points),
            sum_value=sum(p.value for p in points),
            timestamp=_seconds(points[-1].timestamp),
        )
        return family


def build_registry(engine: "MetricsEngine") -> CollectorRegistry:
    registry = CollectorRegistry(auto_describe=False)
    registry.register(EngineCollector(engine))
    return registry


def format_prometheus(engine: "MetricsEngine") -> str:
    """Texto de exposición Prometheus del estado actual del motor."""
    return generate_latest(build_registry(engine)).decode("utf-8")
