"""Tabla estática de objetivos/umbrales de KPI por nombre de métrica.

La polaridad es explícita por métrica. `HIGHER_IS_BETTER` evalúa como
"más bajo es peor" (value <= umbral); `LOWER_IS_BETTER` evalúa al revés
(value >= umbral), para contadores de incidentes y violaciones.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class KPIPolarity(str, Enum):
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"


@dataclass(frozen=True)
class KPIDefaults:
    target: float
    warning: float
    critical: float
    polarity: KPIPolarity = KPIPolarity.HIGHER_IS_BETTER


# Nombres desconocidos: target 0, umbrales 0/0.
PERMISSIVE_DEFAULTS = KPIDefaults(target=0.0, warning=0.0, critical=0.0)

KPI_DEFAULTS: Dict[str, KPIDefaults] = {
    "clinical_decision_accuracy": KPIDefaults(95, 90, 85),
    "hipaa_compliance_score": KPIDefaults(100, 95, 90),
    "audit_log_completeness": KPIDefaults(100, 95, 90),
    "workflow_success_rate": KPIDefaults(98, 95, 90),
    "patient_safety_incidents": KPIDefaults(0, 1, 3, KPIPolarity.LOWER_IS_BETTER),
    "unauthorized_phi_access": KPIDefaults(0, 1, 5, KPIPolarity.LOWER_IS_BETTER),
    "compliance_violations": KPIDefaults(0, 1, 3, KPIPolarity.LOWER_IS_BETTER),
}


def defaults_for(metric_name: str) -> KPIDefaults:
    return KPI_DEFAULTS.get(metric_name, PERMISSIVE_DEFAULTS)
