"""Worker periódico sobre un hilo daemon.

- start(): arranca el loop; el primer tick ocurre tras `interval_seconds`.
- stop(): no se programan más ticks; el tick en curso termina antes de
  devolver (join).
- Un tick que lanza se loguea y cuenta; el loop sigue.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from ..core.monitoring import EngineStats

logger = logging.getLogger(__name__)


class PeriodicWorker:
    name = "periodic"

    def __init__(self, interval_seconds: float, stats: Optional[EngineStats] = None):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._interval = float(interval_seconds)
        self._stats = stats or EngineStats()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._tick_lock = threading.Lock()
        self.ticks = 0
        self.errors = 0
        self.last_tick_at: Optional[float] = None
        self.last_tick_ms: Optional[float] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, daemon=True, name=f"metrics-{self.name}"
        )
        self._thread.start()
        logger.info("[WORKER] %s started interval=%.1fs", self.name, self._interval)

    def stop(self, timeout: Optional[float] = 30.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("[WORKER] %s did not stop within %.1fs", self.name, timeout)
            self._thread = None
        logger.info("[WORKER] %s stopped ticks=%d errors=%d", self.name, self.ticks, self.errors)

    def _loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.tick()

    def tick(self) -> None:
        """Ejecuta un tick aislando errores. Ticks concurrentes se serializan."""
        with self._tick_lock:
            t0 = time.monotonic()
            try:
                self.run_once()
            except Exception as e:
                self.errors += 1
                self._stats.incr("worker_errors")
                logger.exception("[WORKER] %s tick failed: %s", self.name, e)
            finally:
                self.ticks += 1
                self.last_tick_at = time.time()
                self.last_tick_ms = (time.monotonic() - t0) * 1000

    def run_once(self):
        raise NotImplementedError

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "running": self.running,
            "interval_seconds": self._interval,
            "ticks": self.ticks,
            "errors": self.errors,
            "last_tick_at": self.last_tick_at,
            "last_tick_ms": round(self.last_tick_ms, 2) if self.last_tick_ms is not None else None,
        }
