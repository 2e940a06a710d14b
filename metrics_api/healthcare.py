"""Helpers de dominio sanitario sobre el catálogo por defecto.

Traducen eventos clínicos y de cumplimiento a llamadas record() con los
labels declarados en el catálogo. Requieren que el motor haya registrado
las métricas por defecto (METRICS_REGISTER_DEFAULTS=true).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .engine import MetricsEngine

UNKNOWN = "unknown"


def response_priority(response_time: float) -> str:
    """Prioridad derivada del tiempo de respuesta (segundos)."""
    if response_time > 5:
        return "low"
    if response_time > 1:
        return "medium"
    return "high"


class HealthcareMetrics:
    def __init__(self, engine: "MetricsEngine"):
        self._engine = engine

    def record_clinical_decision(
        self, accurate: bool, response_time: float, decision_type: str, department: str
    ) -> None:
        self._engine.gauge(
            "clinical_decision_accuracy",
            100 if accurate else 0,
            {"decision_type": decision_type, "department": department},
        )
        self._engine.histogram(
            "clinical_decision_response_time",
            response_time,
            {"decision_type": decision_type, "priority": response_priority(response_time)},
        )

    def record_patient_safety_incident(self, severity: str, category: str, department: str) -> None:
        self._engine.increment(
            "patient_safety_incidents",
            {"severity": severity, "category": category, "department": department},
        )

    def record_phi_access(
        self,
        authorized: bool,
        user_role: str,
        access_type: str,
        department: str,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        """Accesos autorizados y no autorizados van a contadores distintos."""
        if authorized:
            self._engine.increment(
                "phi_access_attempts",
                {"user_role": user_role, "access_type": access_type, "department": department},
            )
        else:
            self._engine.increment(
                "unauthorized_phi_access",
                {
                    "user_id": user_id or UNKNOWN,
                    "access_type": access_type,
                    "ip_address": ip_address or UNKNOWN,
                },
            )

    def record_workflow_completion(
        self,
        workflow_type: str,
        duration: float,
        success: bool,
        priority: str,
        department: str,
    ) -> None:
        self._engine.histogram(
            "workflow_completion_time",
            duration,
            {"workflow_type": workflow_type, "priority": priority, "department": department},
        )
        self._engine.gauge(
            "workflow_success_rate",
            100 if success else 0,
            {"workflow_type": workflow_type, "department": department},
        )

    def update_hipaa_compliance_score(self, score: float) -> None:
        self._engine.gauge("hipaa_compliance_score", score)

    def record_compliance_violation(self, violation_type: str, severity: str, department: str) -> None:
        self._engine.increment(
            "compliance_violations",
            {"violation_type": violation_type, "severity": severity, "department": department},
        )
