"""Pub-sub tipado con entrega acotada y no bloqueante.

Cada suscriptor tiene su propia cola acotada. publish() usa put_nowait: si la
cola de un suscriptor está llena, el evento se descarta para ese suscriptor y
se cuenta. record() nunca espera a un consumidor lento.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_SUBSCRIBER_QUEUE_SIZE = 1000


class EventType(str, Enum):
    METRIC_REGISTERED = "metric_registered"
    METRIC_RECORDED = "metric_recorded"
    ALERT_TRIGGERED = "alert_triggered"
    ALERT_RESOLVED = "alert_resolved"
    ALERT_ACKNOWLEDGED = "alert_acknowledged"
    KPI_THRESHOLD_EXCEEDED = "kpi_threshold_exceeded"


@dataclass(frozen=True)
class Event:
    type: EventType
    payload: dict
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {"type": self.type.value, "payload": self.payload, "timestamp": self.timestamp}


class Subscription:
    """Cola de eventos de un suscriptor."""

    def __init__(self, sub_id: int, event_types: Optional[FrozenSet[EventType]], maxsize: int):
        self.id = sub_id
        self.event_types = event_types
        self._queue: "queue.Queue[Event]" = queue.Queue(maxsize=maxsize)
        self.dropped = 0
        self.closed = False

    def accepts(self, event: Event) -> bool:
        return self.event_types is None or event.type in self.event_types

    def offer(self, event: Event) -> bool:
        try:
            self._queue.put_nowait(event)
            return True
        except queue.Full:
            self.dropped += 1
            return False

    def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Siguiente evento, o None si no llega ninguno en `timeout`."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[Event]:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def qsize(self) -> int:
        return self._queue.qsize()


class NotificationBus:
    """Bus de eventos del motor."""

    def __init__(
        self,
        default_maxsize: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE,
        on_drop: Optional[Callable[[Event], None]] = None,
    ):
        self._default_maxsize = default_maxsize
        self._on_drop = on_drop
        self._subs: dict = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(
        self,
        event_types: Optional[Iterable[EventType]] = None,
        maxsize: Optional[int] = None,
    ) -> Subscription:
        types = frozenset(event_types) if event_types is not None else None
        sub = Subscription(next(self._ids), types, maxsize or self._default_maxsize)
        with self._lock:
            self._subs[sub.id] = sub
        logger.debug("[BUS] Subscribed id=%d types=%s", sub.id, types)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.closed = True
        with self._lock:
            self._subs.pop(sub.id, None)

    def publish(self, event_type: EventType, payload: dict) -> int:
        """Entrega el evento a los suscriptores interesados.

        Returns:
            Número de suscriptores que recibieron el evento
        """
        with self._lock:
            subs = list(self._subs.values())
        if not subs:
            return 0

        event = Event(type=event_type, payload=payload)
        delivered = 0
        for sub in subs:
            if not sub.accepts(event):
                continue
            if sub.offer(event):
                delivered += 1
            elif self._on_drop is not None:
                self._on_drop(event)
        return delivered

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def close(self) -> None:
        with self._lock:
            subs = list(self._subs.values())
            self._subs.clear()
        for sub in subs:
            sub.closed = True
