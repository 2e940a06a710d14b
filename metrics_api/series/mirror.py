"""Mirror writer: desacopla record() de la escritura al store.

record() encola el punto (put_nowait, ~µs) y vuelve; un hilo writer hace el
ZADD + EXPIRE. La cola acotada da backpressure: si está llena el punto se
descarta del mirror (la memoria sigue siendo autoritativa) y se cuenta.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional

from ..core.monitoring import EngineStats
from ..core.resilience import CircuitBreaker
from ..core.store import MetricStore

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 10_000


@dataclass(frozen=True)
class MirrorWrite:
    key: str
    timestamp: int
    payload: dict
    ttl_seconds: int


class MirrorWriter:
    """Cola acotada + hilo writer hacia el MetricStore."""

    def __init__(
        self,
        store: MetricStore,
        stats: EngineStats,
        breaker: Optional[CircuitBreaker] = None,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
        num_workers: int = 1,
    ):
        self._store = store
        self._stats = stats
        self._breaker = breaker or CircuitBreaker("metric-store-mirror")
        self._queue: "queue.Queue[MirrorWrite]" = queue.Queue(maxsize=max_queue_size)
        self._num_workers = num_workers
        self._stop_event = threading.Event()
        self._workers: List[threading.Thread] = []

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._workers)

    def start(self) -> None:
        if self._workers:
            return
        self._stop_event.clear()
        for i in range(self._num_workers):
            t = threading.Thread(
                target=self._worker_loop,
                args=(i,),
                daemon=True,
                name=f"metrics-mirror-{i}",
            )
            t.start()
            self._workers.append(t)
        logger.info(
            "[MIRROR] Started workers=%d queue_max=%d",
            self._num_workers, self._queue.maxsize,
        )

    def stop(self, drain: bool = True, timeout: float = 5.0) -> None:
        """Detiene los writers. Con drain=True escribe antes lo pendiente."""
        if drain:
            self.flush()
        self._stop_event.set()
        for t in self._workers:
            t.join(timeout=timeout)
        self._workers.clear()
        logger.info("[MIRROR] Stopped. pending=%d", self._queue.qsize())

    def flush(self) -> None:
        """Bloquea hasta que la cola esté vacía.

        Sin workers arrancados, escribe lo pendiente en el hilo actual.
        """
        if not self._workers:
            while True:
                try:
                    item = self._queue.get_nowait()
                except queue.Empty:
                    return
                try:
                    self._write(item)
                finally:
                    self._queue.task_done()
        self._queue.join()

    def enqueue(self, write: MirrorWrite) -> bool:
        """Encola una escritura. Nunca bloquea; False si se descartó."""
        try:
            self._queue.put_nowait(write)
        except queue.Full:
            self._stats.incr("mirror_dropped")
            logger.warning("[MIRROR] Queue full, dropped key=%s", write.key)
            return False
        self._stats.incr("mirror_enqueued")
        return True

    def _worker_loop(self, worker_id: int) -> None:
        while not self._stop_event.is_set():
            try:
                item = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue
            try:
                self._write(item)
            finally:
                self._queue.task_done()

    def _write(self, item: MirrorWrite) -> None:
        if not self._breaker.allow():
            self._stats.incr("mirror_dropped")
            return
        try:
            self._store.append(item.key, item.timestamp, item.payload)
            self._store.expire(item.key, item.ttl_seconds)
        except Exception as e:
            self._breaker.record_failure(e)
            self._stats.incr("mirror_failed")
            logger.warning("[MIRROR] Write failed key=%s: %s", item.key, e)
            return
        self._breaker.record_success()
        self._stats.incr("mirror_written")

    @property
    def pending(self) -> int:
        return self._queue.qsize()
