"""Notificador de alertas por webhook HTTP.

Consume su propia suscripción al bus desde un hilo aparte y hace POST al
endpoint configurado. No bloquea record(); si falla solo loguea el error.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import requests

from ..notifications import EventType, NotificationBus, Subscription

logger = logging.getLogger(__name__)

WEBHOOK_EVENTS = (
    EventType.ALERT_TRIGGERED,
    EventType.ALERT_RESOLVED,
    EventType.KPI_THRESHOLD_EXCEEDED,
)


class AlertWebhookNotifier:
    def __init__(
        self,
        bus: NotificationBus,
        url: str,
        timeout_seconds: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self._bus = bus
        self._url = url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._sub: Optional[Subscription] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.sent = 0
        self.failed = 0

    def start(self) -> None:
        if self._thread is not None:
            return
        self._sub = self._bus.subscribe(WEBHOOK_EVENTS)
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="metrics-alert-webhook"
        )
        self._thread.start()
        logger.info("[WEBHOOK] Started url=%s", self._url)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        if self._sub is not None:
            self._bus.unsubscribe(self._sub)
            self._sub = None
        logger.info("[WEBHOOK] Stopped sent=%d failed=%d", self.sent, self.failed)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            event = self._sub.get(timeout=0.5) if self._sub else None
            if event is None:
                continue
            self.deliver(event.to_dict())

    def deliver(self, body: dict) -> bool:
        try:
            response = self._session.post(self._url, json=body, timeout=self._timeout)
        except requests.RequestException as e:
            self.failed += 1
            logger.error("[WEBHOOK] Error posting %s: %s", body.get("type"), e)
            return False

        if response.ok:
            self.sent += 1
            logger.info("[WEBHOOK] Delivered %s", body.get("type"))
            return True

        self.failed += 1
        logger.warning(
            "[WEBHOOK] Failed %s: %s %s", body.get("type"), response.status_code, response.text[:200]
        )
        return False
