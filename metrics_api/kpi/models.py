from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.domain import ComplianceLevel, HealthcareCategory
from ..registry.kpi_defaults import KPIPolarity


class KPITrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class ComplianceImpact(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_level(cls, level: Optional[ComplianceLevel]) -> "ComplianceImpact":
        return cls(level.value) if level is not None else cls.NONE


@dataclass(frozen=True)
class KPIThreshold:
    warning: float
    critical: float


@dataclass
class TrackedKPI:
    """Estado actual de un KPI (no histórico). Clave: nombre de la métrica."""

    name: str
    value: float
    target: float
    threshold: KPIThreshold
    trend: KPITrend
    last_updated: int
    category: HealthcareCategory
    compliance_impact: ComplianceImpact
    polarity: KPIPolarity = KPIPolarity.HIGHER_IS_BETTER

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "target": self.target,
            "threshold": {
                "warning": self.threshold.warning,
                "critical": self.threshold.critical,
            },
            "trend": self.trend.value,
            "last_updated": self.last_updated,
            "category": self.category.value,
            "compliance_impact": self.compliance_impact.value,
            "polarity": self.polarity.value,
        }
