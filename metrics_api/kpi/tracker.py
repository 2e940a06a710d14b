"""Seguimiento de KPIs sanitarios.

Cada observación de una métrica con categoría sanitaria actualiza su KPI
(valor, tendencia, last_updated) y evalúa umbrales según la polaridad de la
tabla de defaults. Cada cruce crea una alerta nueva vía AlertManager: con
umbrales oscilantes pueden coexistir varias alertas activas del mismo KPI.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Tuple

from ..alerts.manager import AlertManager
from ..alerts.models import AlertCondition, AlertSeverity, HealthcareImpact, MetricAlert
from ..core.clock import Clock, now_ms
from ..core.domain import HealthcareCategory, MetricDefinition
from ..notifications import EventType, NotificationBus
from ..registry.kpi_defaults import KPIPolarity
from ..registry.registry import MetricRegistry
from .models import ComplianceImpact, KPIThreshold, KPITrend, TrackedKPI

logger = logging.getLogger(__name__)


def classify_breach(kpi: TrackedKPI) -> Optional[Tuple[AlertSeverity, float]]:
    """(severidad, umbral cruzado) o None si el valor está dentro de rango."""
    value, th = kpi.value, kpi.threshold
    if kpi.polarity == KPIPolarity.LOWER_IS_BETTER:
        if value >= th.critical:
            return AlertSeverity.CRITICAL, th.critical
        if value >= th.warning:
            return AlertSeverity.WARNING, th.warning
        return None

    if value <= th.critical:
        return AlertSeverity.CRITICAL, th.critical
    if value <= th.warning:
        return AlertSeverity.WARNING, th.warning
    return None


class KPITracker:
    def __init__(
        self,
        registry: MetricRegistry,
        alerts: AlertManager,
        bus: Optional[NotificationBus] = None,
        clock: Clock = now_ms,
    ):
        self._registry = registry
        self._alerts = alerts
        self._bus = bus
        self._clock = clock
        self._kpis: Dict[str, TrackedKPI] = {}
        self._lock = threading.Lock()

    def update_kpi(
        self,
        definition: MetricDefinition,
        value: float,
        labels: Optional[Mapping[str, object]] = None,
    ) -> Optional[MetricAlert]:
        """Actualiza el KPI de `definition`. Devuelve la alerta creada, si la hay."""
        if definition.healthcare_category is None:
            return None

        now = self._clock()
        with self._lock:
            kpi = self._kpis.get(definition.name)
            if kpi is None:
                defaults = self._registry.kpi_defaults(definition.name)
                kpi = TrackedKPI(
                    name=definition.name,
                    value=value,
                    target=defaults.target,
                    threshold=KPIThreshold(defaults.warning, defaults.critical),
                    trend=KPITrend.STABLE,
                    last_updated=now,
                    category=definition.healthcare_category,
                    compliance_impact=ComplianceImpact.from_level(definition.compliance_level),
                    polarity=defaults.polarity,
                )
                self._kpis[definition.name] = kpi
            else:
                if value > kpi.value:
                    kpi.trend = KPITrend.UP
                elif value < kpi.value:
                    kpi.trend = KPITrend.DOWN
                else:
                    kpi.trend = KPITrend.STABLE
                kpi.value = value
                kpi.last_updated = now
            snapshot = replace(kpi)

        breach = classify_breach(snapshot)
        if breach is None:
            return None
        return self._raise_breach(snapshot, *breach)

    def _raise_breach(
        self, kpi: TrackedKPI, severity: AlertSeverity, threshold: float
    ) -> MetricAlert:
        if severity == AlertSeverity.CRITICAL:
            impact = (
                HealthcareImpact.PATIENT_SAFETY
                if kpi.category == HealthcareCategory.PATIENT_SAFETY
                else HealthcareImpact.COMPLIANCE
            )
        else:
            impact = HealthcareImpact.PERFORMANCE

        condition = (
            AlertCondition.ABOVE
            if kpi.polarity == KPIPolarity.LOWER_IS_BETTER
            else AlertCondition.BELOW
        )
        alert = self._alerts.raise_kpi_alert(
            metric=kpi.name,
            condition=condition,
            threshold=threshold,
            severity=severity,
            healthcare_impact=impact,
        )
        logger.warning(
            "[KPI] THRESHOLD kpi=%s value=%s threshold=%s severity=%s alert=%s",
            kpi.name, kpi.value, threshold, severity.value, alert.id,
        )
        if self._bus is not None:
            self._bus.publish(
                EventType.KPI_THRESHOLD_EXCEEDED,
                {"kpi": kpi.to_dict(), "alert": alert.to_dict()},
            )
        return alert

    def get_kpi(self, name: str) -> Optional[TrackedKPI]:
        with self._lock:
            kpi = self._kpis.get(name)
            return replace(kpi) if kpi else None

    def get_kpis(self) -> List[TrackedKPI]:
        with self._lock:
            return [replace(k) for k in self._kpis.values()]

    def get_kpis_by_category(self, category: HealthcareCategory) -> List[TrackedKPI]:
        return [k for k in self.get_kpis() if k.category == category]
