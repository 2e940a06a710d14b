"""Modelos de alertas."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AlertCondition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    EQUAL = "equal"

    def matches(self, value: float, threshold: float) -> bool:
        if self is AlertCondition.ABOVE:
            return value > threshold
        if self is AlertCondition.BELOW:
            return value < threshold
        return value == threshold


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class HealthcareImpact(str, Enum):
    PATIENT_SAFETY = "patient_safety"
    COMPLIANCE = "compliance"
    PERFORMANCE = "performance"


class AlertSource(str, Enum):
    # Registered threshold rule, re-evaluated on every record().
    RULE = "rule"
    # One-off event synthesized by a KPI threshold breach.
    KPI = "kpi"


@dataclass
class MetricAlert:
    """Alerta con ciclo Inactive -> Active -> Inactive (sin estado terminal)."""

    id: str
    metric: str
    condition: AlertCondition
    threshold: float
    severity: AlertSeverity
    healthcare_impact: Optional[HealthcareImpact] = None
    is_active: bool = False
    triggered_at: Optional[int] = None
    acknowledged_at: Optional[int] = None
    source: AlertSource = AlertSource.RULE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "metric": self.metric,
            "condition": self.condition.value,
            "threshold": self.threshold,
            "severity": self.severity.value,
            "healthcare_impact": (
                self.healthcare_impact.value if self.healthcare_impact else None
            ),
            "is_active": self.is_active,
            "triggered_at": self.triggered_at,
            "acknowledged_at": self.acknowledged_at,
            "source": self.source.value,
        }
