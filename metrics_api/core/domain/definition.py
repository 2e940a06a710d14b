"""Modelo de dominio para definiciones de métricas."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from ...errors import InvalidDefinitionError

_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")


class MetricKind(str, Enum):
    """Tipo de métrica (semántica Prometheus)."""
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"


class HealthcareCategory(str, Enum):
    CLINICAL_DECISION_SUPPORT = "clinical_decision_support"
    PATIENT_SAFETY = "patient_safety"
    HIPAA_COMPLIANCE = "hipaa_compliance"
    PHI_ACCESS = "phi_access"
    AUDIT_TRAIL = "audit_trail"
    WORKFLOW_PERFORMANCE = "workflow_performance"


class ComplianceLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class MetricDefinition:
    """Definición registrada de una métrica.

    `kind` y `label_names` son inmutables durante la vida del proceso; el
    registry rechaza re-registros que los cambien. Los tags sanitarios
    (`healthcare_category`, `compliance_level`) solo alimentan los defaults
    de KPI.
    """

    name: str
    kind: MetricKind
    description: str = ""
    unit: Optional[str] = None
    label_names: Tuple[str, ...] = ()
    buckets: Tuple[float, ...] = ()
    objectives: Dict[float, float] = field(default_factory=dict)
    healthcare_category: Optional[HealthcareCategory] = None
    is_phi_related: bool = False
    compliance_level: Optional[ComplianceLevel] = None

    @property
    def is_kpi_eligible(self) -> bool:
        return self.healthcare_category is not None

    def same_shape(self, other: "MetricDefinition") -> bool:
        """True si kind y label_names coinciden (las partes inmutables)."""
        return self.kind == other.kind and self.label_names == other.label_names

    def validate(self) -> None:
        """Valida la forma de la definición.

        Raises:
            InvalidDefinitionError: con el motivo del rechazo
        """
        if not self.name or not self.name.strip():
            raise InvalidDefinitionError(self.name, "name must be non-empty")
        if not _NAME_RE.match(self.name):
            raise InvalidDefinitionError(
                self.name, "name must match [a-zA-Z_:][a-zA-Z0-9_:]*"
            )
        if not isinstance(self.kind, MetricKind):
            raise InvalidDefinitionError(self.name, f"unknown kind {self.kind!r}")

        if len(set(self.label_names)) != len(self.label_names):
            raise InvalidDefinitionError(self.name, "label_names must be unique")
        for label in self.label_names:
            if not label or not _NAME_RE.match(label):
                raise InvalidDefinitionError(self.name, f"invalid label name {label!r}")

        if self.buckets and self.kind != MetricKind.HISTOGRAM:
            raise InvalidDefinitionError(self.name, "buckets only apply to histograms")
        for prev, cur in zip(self.buckets, self.buckets[1:]):
            if not cur > prev:
                raise InvalidDefinitionError(
                    self.name, "histogram buckets must be strictly increasing"
                )
        if any(not math.isfinite(b) for b in self.buckets):
            raise InvalidDefinitionError(self.name, "histogram buckets must be finite")

        if self.objectives and self.kind != MetricKind.SUMMARY:
            raise InvalidDefinitionError(self.name, "objectives only apply to summaries")
        for quantile, error in self.objectives.items():
            if not 0.0 < quantile < 1.0:
                raise InvalidDefinitionError(
                    self.name, f"summary quantile {quantile} outside (0, 1)"
                )
            if error < 0:
                raise InvalidDefinitionError(
                    self.name, f"summary objective error {error} is negative"
                )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "description": self.description,
            "unit": self.unit,
            "label_names": list(self.label_names),
            "buckets": list(self.buckets),
            "objectives": {str(q): e for q, e in self.objectives.items()},
            "healthcare_category": (
                self.healthcare_category.value if self.healthcare_category else None
            ),
            "is_phi_related": self.is_phi_related,
            "compliance_level": (
                self.compliance_level.value if self.compliance_level else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MetricDefinition":
        """Construye una definición a partir de un dict (API o store).

        Los valores de enum desconocidos se reportan como InvalidDefinitionError.
        """
        name = data.get("name", "")
        try:
            kind = MetricKind(data.get("kind"))
            category = data.get("healthcare_category")
            level = data.get("compliance_level")
            return cls(
                name=name,
                kind=kind,
                description=data.get("description") or "",
                unit=data.get("unit"),
                label_names=tuple(data.get("label_names") or ()),
                buckets=tuple(float(b) for b in data.get("buckets") or ()),
                objectives={
                    float(q): float(e) for q, e in (data.get("objectives") or {}).items()
                },
                healthcare_category=HealthcareCategory(category) if category else None,
                is_phi_related=bool(data.get("is_phi_related", False)),
                compliance_level=ComplianceLevel(level) if level else None,
            )
        except (TypeError, ValueError) as e:
            raise InvalidDefinitionError(name, str(e)) from e
