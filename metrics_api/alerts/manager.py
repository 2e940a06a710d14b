"""Gestor de alertas por umbral.

Máquina de estados por alerta de regla:
- condición true  + inactiva -> activa   (triggered_at = now, alert_triggered)
- condición false + activa   -> inactiva (acknowledged_at = now, alert_resolved)
- resto: no-op (idempotente)

acknowledge_alert() fuerza activa -> inactiva sin impedir que la regla vuelva
a dispararse con la siguiente observación que cumpla la condición.

Las alertas sintetizadas por KPI no se re-evalúan por condición: cada
cruce de umbral es su propio evento y solo se cierran al reconocerlas.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Tuple

from ..core.clock import Clock, now_ms
from ..errors import AlertNotFoundError, InvalidAlertError
from ..notifications import EventType, NotificationBus
from ..registry.registry import MetricRegistry
from .models import (
    AlertCondition,
    AlertSeverity,
    AlertSource,
    HealthcareImpact,
    MetricAlert,
)

logger = logging.getLogger(__name__)


def _new_alert_id(prefix: str, ts: int) -> str:
    return f"{prefix}_{ts}_{uuid.uuid4().hex[:9]}"


class AlertManager:
    def __init__(
        self,
        registry: MetricRegistry,
        bus: Optional[NotificationBus] = None,
        clock: Clock = now_ms,
    ):
        self._registry = registry
        self._bus = bus
        self._clock = clock
        self._alerts: Dict[str, MetricAlert] = {}
        # metric -> rule alert ids, so evaluate() only touches bound alerts
        self._rules_by_metric: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def add_alert(
        self,
        metric: str,
        condition: str,
        threshold: float,
        severity: str = AlertSeverity.WARNING.value,
        healthcare_impact: Optional[str] = None,
    ) -> str:
        """Registra una regla de alerta (inactiva).

        Raises:
            NotRegisteredError: métrica desconocida
            InvalidAlertError: condición, severidad o impacto desconocidos
        """
        self._registry.lookup(metric)
        try:
            cond = AlertCondition(condition)
            sev = AlertSeverity(severity)
            impact = HealthcareImpact(healthcare_impact) if healthcare_impact else None
            threshold = float(threshold)
        except (TypeError, ValueError) as e:
            raise InvalidAlertError(f"Invalid alert for metric '{metric}': {e}") from e

        alert = MetricAlert(
            id=_new_alert_id("alert", self._clock()),
            metric=metric,
            condition=cond,
            threshold=threshold,
            severity=sev,
            healthcare_impact=impact,
        )
        with self._lock:
            self._alerts[alert.id] = alert
            self._rules_by_metric.setdefault(metric, []).append(alert.id)

        logger.info(
            "[ALERT] Added id=%s metric=%s %s %s severity=%s",
            alert.id, metric, cond.value, threshold, sev.value,
        )
        return alert.id

    def evaluate(
        self,
        metric: str,
        value: float,
        labels: Optional[Mapping[str, object]] = None,
    ) -> List[MetricAlert]:
        """Re-evalúa las reglas ligadas a `metric`. Devuelve las que cambiaron."""
        events: List[Tuple[EventType, MetricAlert]] = []
        with self._lock:
            ids = self._rules_by_metric.get(metric)
            if not ids:
                return []
            now = self._clock()
            for alert_id in ids:
                alert = self._alerts[alert_id]
                met = alert.condition.matches(value, alert.threshold)
                if met and not alert.is_active:
                    alert.is_active = True
                    alert.triggered_at = now
                    events.append((EventType.ALERT_TRIGGERED, replace(alert)))
                elif not met and alert.is_active:
                    alert.is_active = False
                    alert.acknowledged_at = now
                    events.append((EventType.ALERT_RESOLVED, replace(alert)))

        for event_type, alert in events:
            if event_type == EventType.ALERT_TRIGGERED:
                logger.warning(
                    "[ALERT] TRIGGERED id=%s metric=%s value=%s %s %s severity=%s",
                    alert.id, metric, value, alert.condition.value,
                    alert.threshold, alert.severity.value,
                )
            else:
                logger.info("[ALERT] RESOLVED id=%s metric=%s value=%s", alert.id, metric, value)
            self._publish(event_type, alert, value=value, labels=labels)

        return [alert for _, alert in events]

    def raise_kpi_alert(
        self,
        metric: str,
        condition: AlertCondition,
        threshold: float,
        severity: AlertSeverity,
        healthcare_impact: Optional[HealthcareImpact] = None,
    ) -> MetricAlert:
        """Crea una alerta activa nueva por un cruce de umbral de KPI."""
        now = self._clock()
        alert = MetricAlert(
            id=_new_alert_id(f"kpi_{metric}", now),
            metric=metric,
            condition=condition,
            threshold=threshold,
            severity=severity,
            healthcare_impact=healthcare_impact,
            is_active=True,
            triggered_at=now,
            source=AlertSource.KPI,
        )
        with self._lock:
            self._alerts[alert.id] = alert
        return replace(alert)

    def acknowledge_alert(self, alert_id: str) -> bool:
        """Desactiva una alerta activa.

        Returns:
            True si estaba activa, False si ya estaba inactiva

        Raises:
            AlertNotFoundError: id desconocido
        """
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            if not alert.is_active:
                return False
            alert.is_active = False
            alert.acknowledged_at = self._clock()
            snapshot = replace(alert)

        logger.info("[ALERT] ACKNOWLEDGED id=%s metric=%s", alert_id, snapshot.metric)
        self._publish(EventType.ALERT_ACKNOWLEDGED, snapshot)
        return True

    def _publish(self, event_type: EventType, alert: MetricAlert, **extra) -> None:
        if self._bus is None:
            return
        payload = {"alert": alert.to_dict()}
        if "value" in extra:
            payload["value"] = extra["value"]
        if extra.get("labels") is not None:
            payload["labels"] = dict(extra["labels"])
        self._bus.publish(event_type, payload)

    def get_alert(self, alert_id: str) -> MetricAlert:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            return replace(alert)

    def get_active_alerts(self) -> List[MetricAlert]:
        with self._lock:
            return [replace(a) for a in self._alerts.values() if a.is_active]

    def list_alerts(self, metric: Optional[str] = None) -> List[MetricAlert]:
        with self._lock:
            return [
                replace(a)
                for a in self._alerts.values()
                if metric is None or a.metric == metric
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)
