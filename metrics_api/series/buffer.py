"""Punto de entrada de escritura: record() y sus wrappers.

Orden dentro de record():
1. append a la TimeSeries en memoria (evicción FIFO si está llena)
2. encolar el mirror al store (fire-and-forget)
3. (a) evaluación de alertas, (b) KPI si la métrica tiene categoría,
   (c) evento metric_recorded

Ni el mirror ni (a)-(c) pueden fallar la llamada.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Mapping, Optional, Tuple

from ..core.clock import Clock, now_ms
from ..core.domain import Labels, MetricDefinition, MetricKind, MetricPoint
from ..core.monitoring import EngineStats
from ..core.store import series_key
from ..errors import InvalidLabelsError, InvalidValueError
from ..notifications import EventType, NotificationBus
from .mirror import MirrorWrite, MirrorWriter

if TYPE_CHECKING:
    from ..alerts.manager import AlertManager
    from ..kpi.tracker import KPITracker
    from ..registry.registry import MetricRegistry

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 7 * 24 * 60 * 60


class TimeSeriesBuffer:
    def __init__(
        self,
        registry: "MetricRegistry",
        mirror: Optional[MirrorWriter] = None,
        alerts: Optional["AlertManager"] = None,
        kpis: Optional["KPITracker"] = None,
        bus: Optional[NotificationBus] = None,
        stats: Optional[EngineStats] = None,
        retention_seconds: int = DEFAULT_RETENTION_SECONDS,
        namespace: str = "",
        default_labels: Optional[Mapping[str, object]] = None,
        clock: Clock = now_ms,
    ):
        self._registry = registry
        self._mirror = mirror
        self._alerts = alerts
        self._kpis = kpis
        self._bus = bus
        self._stats = stats or EngineStats()
        self._retention_seconds = retention_seconds
        self._namespace = namespace
        self._default_labels = dict(default_labels or {})
        self._clock = clock

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Mapping[str, object]] = None,
        timestamp: Optional[int] = None,
    ) -> MetricPoint:
        """Registra una observación.

        Raises:
            NotRegisteredError: métrica desconocida (no hay auto-registro)
            InvalidValueError: valor no numérico o no finito
            InvalidLabelsError: valor de label no escalar
        """
        definition = self._registry.lookup(metric_name)
        value = self._coerce_value(metric_name, value)
        clean_labels = self._normalize_labels(definition, labels)
        ts = int(timestamp) if timestamp is not None else self._clock()

        point, clamped = self._registry.series(metric_name).append(value, clean_labels, ts)
        self._stats.incr("points_recorded")
        if clamped:
            self._stats.incr("out_of_order_clamped")
            logger.warning(
                "[SERIES] OUT_OF_ORDER metric=%s ts=%d clamped_to=%d",
                metric_name, ts, point.timestamp,
            )

        if self._mirror is not None:
            self._mirror.enqueue(
                MirrorWrite(
                    key=series_key(metric_name, self._namespace),
                    timestamp=point.timestamp,
                    payload=point.to_dict(),
                    ttl_seconds=self._retention_seconds,
                )
            )

        self._run_side_effects(definition, point)
        return point

    def _run_side_effects(self, definition: MetricDefinition, point: MetricPoint) -> None:
        if self._alerts is not None:
            try:
                self._alerts.evaluate(definition.name, point.value, point.labels)
            except Exception:
                self._stats.incr("side_effect_errors")
                logger.exception("[SERIES] Alert evaluation failed metric=%s", definition.name)

        if self._kpis is not None and definition.is_kpi_eligible:
            try:
                self._kpis.update_kpi(definition, self._kpi_value(definition, point), point.labels)
            except Exception:
                self._stats.incr("side_effect_errors")
                logger.exception("[SERIES] KPI update failed metric=%s", definition.name)

        if self._bus is not None:
            try:
                self._bus.publish(
                    EventType.METRIC_RECORDED,
                    {
                        "metric": definition.name,
                        "value": point.value,
                        "labels": dict(point.labels),
                        "timestamp": point.timestamp,
                    },
                )
            except Exception:
                self._stats.incr("side_effect_errors")
                logger.exception("[SERIES] Notification failed metric=%s", definition.name)

    def _kpi_value(self, definition: MetricDefinition, point: MetricPoint) -> float:
        # counters guardan deltas; el KPI mira el total dentro de la retención
        if definition.kind == MetricKind.COUNTER:
            return self.counter_total(
                definition.name, self._retention_seconds * 1000, now=point.timestamp
            )
        return point.value

    @staticmethod
    def _coerce_value(metric_name: str, value: object) -> float:
        if isinstance(value, bool):
            raise InvalidValueError(metric_name, value, "booleans are not metric values")
        try:
            result = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise InvalidValueError(metric_name, value, "not a number")
        if not math.isfinite(result):
            raise InvalidValueError(metric_name, value, "must be finite")
        return result

    def _normalize_labels(
        self, definition: MetricDefinition, labels: Optional[Mapping[str, object]]
    ) -> Labels:
        """Restringe labels al esquema declarado, en el orden de label_names.

        Claves no declaradas se descartan (contadas); valores no escalares
        lanzan InvalidLabelsError.
        """
        allowed = definition.label_names
        merged = {k: v for k, v in self._default_labels.items() if k in allowed}
        dropped = []
        for key, val in (labels or {}).items():
            if key not in allowed:
                dropped.append(key)
                continue
            merged[key] = val

        if dropped:
            self._stats.incr("labels_dropped", len(dropped))
            logger.debug(
                "[SERIES] Dropped undeclared labels metric=%s keys=%s",
                definition.name, dropped,
            )

        clean: Labels = {}
        for key in allowed:
            if key not in merged:
                continue
            val = merged[key]
            if isinstance(val, bool) or not isinstance(val, (str, int, float)):
                raise InvalidLabelsError(definition.name, key, val)
            clean[key] = val
        return clean

    # Named wrappers; all funnel through record().

    def increment(
        self,
        metric_name: str,
        labels: Optional[Mapping[str, object]] = None,
        amount: float = 1,
    ) -> MetricPoint:
        """Suma `amount` a un counter. Se guarda el delta, no el total."""
        definition = self._registry.lookup(metric_name)
        if definition.kind == MetricKind.COUNTER and float(amount) < 0:
            raise InvalidValueError(metric_name, amount, "counters only go up")
        return self.record(metric_name, amount, labels)

    def gauge(self, metric_name: str, value: float, labels=None) -> MetricPoint:
        return self.record(metric_name, value, labels)

    def histogram(self, metric_name: str, value: float, labels=None) -> MetricPoint:
        return self.record(metric_name, value, labels)

    def summary(self, metric_name: str, value: float, labels=None) -> MetricPoint:
        return self.record(metric_name, value, labels)

    # Reads

    def get_series(self, metric_name: str) -> Tuple[MetricPoint, ...]:
        """Copia ordenada de la serie en el momento de la llamada."""
        return tuple(self._registry.series(metric_name).snapshot())

    def latest_point(self, metric_name: str) -> Optional[MetricPoint]:
        return self._registry.series(metric_name).latest()

    def counter_total(
        self,
        metric_name: str,
        window_ms: Optional[int] = None,
        now: Optional[int] = None,
    ) -> float:
        """Total de un counter: suma de deltas en la ventana (o en todo el buffer)."""
        series = self._registry.series(metric_name)
        if window_ms is None:
            points = series.snapshot()
        else:
            now = now if now is not None else self._clock()
            points = series.points_since(now - window_ms)
        return float(sum(p.value for p in points))
