"""Circuit breaker para las escrituras espejo contra el store.

Con Redis caído, el writer deja de reintentar cada punto: el circuito se abre
tras `failure_threshold` fallos seguidos y los puntos se descartan (contados)
hasta que pasa `recovery_timeout_seconds`.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .circuit_breaker_config import CircuitBreakerConfig, CircuitState

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Circuit breaker de tres estados (CLOSED / OPEN / HALF_OPEN).

    Uso:
        if not cb.allow():
            return  # descartar
        try:
            store.append(...)
            cb.record_success()
        except Exception as e:
            cb.record_failure(e)
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._config = config or CircuitBreakerConfig.from_env()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at: float = 0.0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def allow(self) -> bool:
        """True si la operación puede intentarse ahora."""
        with self._lock:
            self._maybe_half_open()
            return self._state != CircuitState.OPEN

    def _maybe_half_open(self) -> None:
        if self._state != CircuitState.OPEN:
            return
        if self._clock() - self._opened_at >= self._config.recovery_timeout_seconds:
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0
            logger.info("[CB] '%s': OPEN -> HALF_OPEN (testing recovery)", self.name)

    def record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self._config.success_threshold:
                    self._state = CircuitState.CLOSED
                    self._failure_count = 0
                    logger.info("[CB] '%s': HALF_OPEN -> CLOSED (recovered)", self.name)
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0

    def record_failure(self, error: Exception) -> None:
        with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN:
                self._open()
                logger.warning(
                    "[CB] '%s': HALF_OPEN -> OPEN (test failed: %s)",
                    self.name, str(error)[:100],
                )
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._config.failure_threshold
            ):
                self._open()
                logger.warning(
                    "[CB] '%s': CLOSED -> OPEN (failures=%d threshold=%d error=%s)",
                    self.name,
                    self._failure_count,
                    self._config.failure_threshold,
                    str(error)[:100],
                )

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "config": {
                    "failure_threshold": self._config.failure_threshold,
                    "recovery_timeout_seconds": self._config.recovery_timeout_seconds,
                    "success_threshold": self._config.success_threshold,
                },
            }
