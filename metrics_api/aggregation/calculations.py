"""Estadísticos puros sobre listas de puntos.

Percentiles por nearest-rank sin interpolación:
    index = floor(p/100 * n), acotado a [0, n-1] sobre la muestra ordenada.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Sequence

from ..core.domain import MetricPoint
from .models import AggregationKind

# Absorbe el error de coma flotante en p * n / 100 (p.ej. 0.95 * 100).
_RANK_EPSILON = 1e-9

ROLLUP_PERCENTILES = (
    (AggregationKind.P50, 50.0),
    (AggregationKind.P95, 95.0),
    (AggregationKind.P99, 99.0),
)


def nearest_rank(sorted_values: Sequence[float], percentile: float) -> float:
    """Valor en el rango nearest-rank. 0.0 para una muestra vacía."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    index = int(math.floor(percentile * n / 100.0 + _RANK_EPSILON))
    index = max(0, min(index, n - 1))
    return float(sorted_values[index])


def percentiles(values: Iterable[float], wanted: Iterable[float]) -> Dict[float, float]:
    ordered = sorted(values)
    return {p: nearest_rank(ordered, p) for p in wanted}


def rate(points: Sequence[MetricPoint]) -> float:
    """(último - primero) / segundos transcurridos; 0.0 si no se puede calcular."""
    if len(points) < 2:
        return 0.0
    first, last = points[0], points[-1]
    elapsed_s = (last.timestamp - first.timestamp) / 1000.0
    if elapsed_s <= 0:
        return 0.0
    return (last.value - first.value) / elapsed_s


def aggregate(points: Sequence[MetricPoint]) -> Dict[AggregationKind, float]:
    """Todos los rollups de una ventana no vacía."""
    values: List[float] = sorted(p.value for p in points)
    n = len(values)
    total = float(sum(values))
    result = {
        AggregationKind.SUM: total,
        AggregationKind.AVG: total / n,
        AggregationKind.MIN: values[0],
        AggregationKind.MAX: values[-1],
        AggregationKind.COUNT: float(n),
        AggregationKind.RATE: rate(points),
    }
    for kind, p in ROLLUP_PERCENTILES:
        result[kind] = nearest_rank(values, p)
    return result


def population_stats(values: Sequence[float]) -> tuple:
    """(media, desviación estándar poblacional)."""
    n = len(values)
    if n == 0:
        return 0.0, 0.0
    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    return mean, math.sqrt(variance)
