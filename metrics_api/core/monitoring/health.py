"""Health checks del motor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..resilience import CircuitBreaker, CircuitState
from ..store import MetricStore


@dataclass
class HealthStatus:
    """Estado de salud del motor."""
    healthy: bool
    store_connected: bool
    mirror_circuit: str
    aggregation_worker_running: bool
    cleanup_worker_running: bool

    def to_dict(self) -> dict:
        return {
            "healthy": self.healthy,
            "store_connected": self.store_connected,
            "mirror_circuit": self.mirror_circuit,
            "aggregation_worker_running": self.aggregation_worker_running,
            "cleanup_worker_running": self.cleanup_worker_running,
        }


class HealthChecker:
    """Verifica el estado del store y del circuito del mirror.

    El motor sigue siendo funcional sin store (la memoria es autoritativa),
    así que `healthy` solo exige que los workers estén vivos.
    """

    def __init__(self, store: MetricStore, breaker: Optional[CircuitBreaker] = None):
        self._store = store
        self._breaker = breaker

    def check_store(self) -> bool:
        try:
            return bool(self._store.ping())
        except Exception:
            return False

    def get_status(self, aggregation_running: bool, cleanup_running: bool) -> HealthStatus:
        circuit = self._breaker.state if self._breaker else CircuitState.CLOSED
        return HealthStatus(
            healthy=aggregation_running and cleanup_running,
            store_connected=self.check_store(),
            mirror_circuit=circuit.value,
            aggregation_worker_running=aggregation_running,
            cleanup_worker_running=cleanup_running,
        )
