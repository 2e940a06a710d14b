"""Serie temporal acotada en memoria para una métrica."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List, Optional, Tuple

from ..core.domain import Labels, MetricPoint

DEFAULT_MAX_POINTS = 10_000


class TimeSeries:
    """Buffer FIFO acotado de MetricPoints.

    - deque(maxlen) da evicción O(1) del punto más antiguo.
    - Timestamps no decrecientes: un punto que llega con timestamp anterior
      al último se fija al último timestamp.
    - Un lock por serie: appends concurrentes sobre la misma métrica se
      serializan, métricas distintas no compiten.
    """

    def __init__(self, metric: str, max_points: int = DEFAULT_MAX_POINTS):
        if max_points < 1:
            raise ValueError("max_points must be >= 1")
        self.metric = metric
        self._points: Deque[MetricPoint] = deque(maxlen=max_points)
        self._lock = threading.Lock()
        self.evicted_total = 0

    @property
    def max_points(self) -> int:
        return self._points.maxlen or 0

    def append(self, value: float, labels: Labels, timestamp: int) -> Tuple[MetricPoint, bool]:
        """Añade un punto. Devuelve (punto, clamped)."""
        with self._lock:
            clamped = False
            if self._points and timestamp < self._points[-1].timestamp:
                timestamp = self._points[-1].timestamp
                clamped = True
            point = MetricPoint(timestamp=timestamp, value=value, labels=labels)
            if len(self._points) == self._points.maxlen:
                self.evicted_total += 1
            self._points.append(point)
            return point, clamped

    def snapshot(self) -> List[MetricPoint]:
        with self._lock:
            return list(self._points)

    def points_since(self, start: int) -> List[MetricPoint]:
        return [p for p in self.snapshot() if p.timestamp >= start]

    def points_between(self, start: int, end: int) -> List[MetricPoint]:
        return [p for p in self.snapshot() if start <= p.timestamp <= end]

    def tail(self, n: int) -> List[MetricPoint]:
        with self._lock:
            if n >= len(self._points):
                return list(self._points)
            return list(self._points)[-n:]

    def latest(self) -> Optional[MetricPoint]:
        with self._lock:
            return self._points[-1] if self._points else None

    def evict_before(self, cutoff: int) -> int:
        """Elimina puntos con timestamp estrictamente anterior a `cutoff`."""
        removed = 0
        with self._lock:
            while self._points and self._points[0].timestamp < cutoff:
                self._points.popleft()
                removed += 1
        return removed

    def clear(self) -> None:
        with self._lock:
            self._points.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._points)
