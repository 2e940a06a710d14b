"""Modelos de agregación."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from ..core.domain import Labels


class AggregationKind(str, Enum):
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    COUNT = "count"
    RATE = "rate"
    P50 = "p50"
    P95 = "p95"
    P99 = "p99"


@dataclass(frozen=True)
class AggregatedMetric:
    """Fila de rollup. Se persiste en el store y nunca se modifica."""

    metric: str
    aggregation: AggregationKind
    window: str
    value: float
    timestamp: int
    labels: Labels = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "aggregation": self.aggregation.value,
            "window": self.window,
            "value": self.value,
            "timestamp": self.timestamp,
            "labels": dict(self.labels),
        }

    @classmethod
    def from_dict(cls, data: dict, metric: str, aggregation: AggregationKind, window: str) -> "AggregatedMetric":
        return cls(
            metric=data.get("metric", metric),
            aggregation=AggregationKind(data.get("aggregation", aggregation.value)),
            window=data.get("window", window),
            value=float(data["value"]),
            timestamp=int(data["timestamp"]),
            labels=dict(data.get("labels") or {}),
        )


@dataclass
class RollupResult:
    """Resumen de una pasada del agregador."""

    timestamp: int
    metrics_processed: int = 0
    rows_written: int = 0
    windows_skipped: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "metrics_processed": self.metrics_processed,
            "rows_written": self.rows_written,
            "windows_skipped": self.windows_skipped,
            "failures": list(self.failures),
        }
