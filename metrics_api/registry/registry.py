"""Registro de definiciones de métricas.

Fuente única de verdad para definiciones; cada definición registrada posee
exactamente una TimeSeries.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from ..core.domain import MetricDefinition
from ..core.monitoring import EngineStats
from ..core.store import MetricStore, definitions_key
from ..errors import DuplicateNameError, NotRegisteredError
from ..notifications import EventType, NotificationBus
from ..series.time_series import DEFAULT_MAX_POINTS, TimeSeries
from .kpi_defaults import KPIDefaults, defaults_for

logger = logging.getLogger(__name__)


class MetricRegistry:
    """Registro thread-safe de métricas.

    - register() valida, es idempotente para definiciones idénticas y falla
      cerrado si cambian kind o label_names.
    - Las lecturas (lookup, series) no toman el lock: los dicts solo crecen
      y cada asignación es atómica.
    """

    def __init__(
        self,
        store: Optional[MetricStore] = None,
        bus: Optional[NotificationBus] = None,
        stats: Optional[EngineStats] = None,
        max_points: int = DEFAULT_MAX_POINTS,
        namespace: str = "",
    ):
        self._store = store
        self._bus = bus
        self._stats = stats or EngineStats()
        self._max_points = max_points
        self._namespace = namespace

        self._definitions: Dict[str, MetricDefinition] = {}
        self._series: Dict[str, TimeSeries] = {}
        self._kpi_defaults: Dict[str, KPIDefaults] = {}
        self._lock = threading.Lock()

    def register(self, definition: MetricDefinition) -> MetricDefinition:
        """Registra una definición.

        Returns:
            La definición registrada (la existente si el re-registro es idéntico)

        Raises:
            InvalidDefinitionError: forma inválida
            DuplicateNameError: nombre existente con kind o label_names distintos
        """
        definition.validate()

        with self._lock:
            existing = self._definitions.get(definition.name)
            if existing is not None:
                if existing.kind != definition.kind:
                    raise DuplicateNameError(
                        definition.name,
                        f"kind {existing.kind.value} cannot change to {definition.kind.value}",
                    )
                if existing.label_names != definition.label_names:
                    raise DuplicateNameError(
                        definition.name,
                        f"label_names {list(existing.label_names)} cannot change "
                        f"to {list(definition.label_names)}",
                    )
                if existing != definition:
                    logger.info(
                        "[REGISTRY] Re-register of %s with same shape; keeping original",
                        definition.name,
                    )
                return existing

            self._series[definition.name] = TimeSeries(definition.name, self._max_points)
            if definition.is_kpi_eligible:
                self._kpi_defaults[definition.name] = defaults_for(definition.name)
            self._definitions[definition.name] = definition

        logger.info(
            "[REGISTRY] Registered metric=%s kind=%s labels=%s",
            definition.name, definition.kind.value, list(definition.label_names),
        )
        self._persist(definition)
        if self._bus is not None:
            self._bus.publish(EventType.METRIC_REGISTERED, definition.to_dict())
        return definition

    def _persist(self, definition: MetricDefinition) -> None:
        if self._store is None:
            return
        try:
            self._store.save_definition(
                definitions_key(self._namespace), definition.name, definition.to_dict()
            )
        except Exception as e:
            self._stats.incr("mirror_failed")
            logger.warning(
                "[REGISTRY] Failed to persist definition %s: %s", definition.name, e
            )

    def lookup(self, name: str) -> MetricDefinition:
        definition = self._definitions.get(name)
        if definition is None:
            raise NotRegisteredError(name)
        return definition

    def get(self, name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(name)

    def series(self, name: str) -> TimeSeries:
        series = self._series.get(name)
        if series is None:
            raise NotRegisteredError(name)
        return series

    def kpi_defaults(self, name: str) -> KPIDefaults:
        """Defaults sembrados al registrar; permisivos si no hay entrada."""
        return self._kpi_defaults.get(name) or defaults_for(name)

    def list_definitions(self) -> List[MetricDefinition]:
        with self._lock:
            return list(self._definitions.values())

    def all_series(self) -> Dict[str, TimeSeries]:
        with self._lock:
            return dict(self._series)

    def __contains__(self, name: str) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)
