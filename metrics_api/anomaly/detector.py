from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ..aggregation.calculations import population_stats
from ..core.domain import MetricPoint
from ..registry.registry import MetricRegistry

DEFAULT_Z_THRESHOLD = 2.0
DEFAULT_WINDOW_SIZE = 100


@dataclass(frozen=True)
class WindowStats:
    """Media y desviación poblacional de la muestra analizada."""

    mean: float
    std_dev: float
    count: int


class AnomalyDetector:
    """Detección de outliers por z-score sobre los últimos N puntos.

    - Cálculo bajo demanda, sin estado ni planificación propia.
    - Muestra insuficiente (< window_size) o serie constante (std == 0)
      devuelven lista vacía.
    """

    def __init__(self, registry: MetricRegistry):
        self._registry = registry

    def window_stats(self, metric_name: str, window_size: int = DEFAULT_WINDOW_SIZE) -> WindowStats:
        points = self._registry.series(metric_name).tail(window_size)
        mean, std_dev = population_stats([p.value for p in points])
        return WindowStats(mean=mean, std_dev=std_dev, count=len(points))

    def detect_anomalies(
        self,
        metric_name: str,
        z_threshold: float = DEFAULT_Z_THRESHOLD,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ) -> List[MetricPoint]:
        if window_size < 1:
            return []
        points = self._registry.series(metric_name).tail(window_size)
        if len(points) < window_size:
            return []

        mean, std_dev = population_stats([p.value for p in points])
        if std_dev == 0:
            return []

        return [p for p in points if abs(p.value - mean) / std_dev > z_threshold]
