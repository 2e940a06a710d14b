"""Catálogo por defecto de métricas sanitarias y de sistema."""

from __future__ import annotations

from typing import List

from ..core.domain import ComplianceLevel, HealthcareCategory, MetricDefinition, MetricKind

_CDS = HealthcareCategory.CLINICAL_DECISION_SUPPORT
_SAFETY = HealthcareCategory.PATIENT_SAFETY
_HIPAA = HealthcareCategory.HIPAA_COMPLIANCE
_PHI = HealthcareCategory.PHI_ACCESS
_AUDIT = HealthcareCategory.AUDIT_TRAIL
_WORKFLOW = HealthcareCategory.WORKFLOW_PERFORMANCE

_CRITICAL = ComplianceLevel.CRITICAL
_HIGH = ComplianceLevel.HIGH
_MEDIUM = ComplianceLevel.MEDIUM

DEFAULT_METRICS: List[MetricDefinition] = [
    # Clinical decision support
    MetricDefinition(
        name="clinical_decision_accuracy",
        kind=MetricKind.GAUGE,
        description="Clinical decision support system accuracy percentage",
        unit="percent",
        label_names=("decision_type", "department"),
        healthcare_category=_CDS,
        compliance_level=_CRITICAL,
    ),
    MetricDefinition(
        name="clinical_decision_response_time",
        kind=MetricKind.HISTOGRAM,
        description="Time taken for clinical decision support responses",
        unit="seconds",
        label_names=("decision_type", "priority"),
        buckets=(0.1, 0.5, 1, 2, 5, 10, 30),
        healthcare_category=_CDS,
        compliance_level=_HIGH,
    ),
    # Patient safety
    MetricDefinition(
        name="patient_safety_incidents",
        kind=MetricKind.COUNTER,
        description="Number of patient safety incidents detected",
        label_names=("severity", "category", "department"),
        healthcare_category=_SAFETY,
        compliance_level=_CRITICAL,
    ),
    MetricDefinition(
        name="safety_alert_response_time",
        kind=MetricKind.HISTOGRAM,
        description="Time to respond to patient safety alerts",
        unit="seconds",
        label_names=("severity", "department"),
        buckets=(30, 60, 300, 600, 1800, 3600),
        healthcare_category=_SAFETY,
        compliance_level=_CRITICAL,
    ),
    # HIPAA compliance
    MetricDefinition(
        name="hipaa_compliance_score",
        kind=MetricKind.GAUGE,
        description="Overall HIPAA compliance score",
        unit="percent",
        healthcare_category=_HIPAA,
        compliance_level=_CRITICAL,
    ),
    MetricDefinition(
        name="compliance_violations",
        kind=MetricKind.COUNTER,
        description="Number of compliance violations detected",
        label_names=("violation_type", "severity", "department"),
        healthcare_category=_HIPAA,
        is_phi_related=True,
        compliance_level=_CRITICAL,
    ),
    # PHI access
    MetricDefinition(
        name="phi_access_attempts",
        kind=MetricKind.COUNTER,
        description="Number of PHI access attempts",
        label_names=("user_role", "access_type", "department"),
        healthcare_category=_PHI,
        is_phi_related=True,
        compliance_level=_CRITICAL,
    ),
    MetricDefinition(
        name="unauthorized_phi_access",
        kind=MetricKind.COUNTER,
        description="Number of unauthorized PHI access attempts",
        label_names=("user_id", "access_type", "ip_address"),
        healthcare_category=_PHI,
        is_phi_related=True,
        compliance_level=_CRITICAL,
    ),
    # Audit trail
    MetricDefinition(
        name="audit_log_completeness",
        kind=MetricKind.GAUGE,
        description="Percentage of complete audit logs",
        unit="percent",
        healthcare_category=_AUDIT,
        compliance_level=_HIGH,
    ),
    MetricDefinition(
        name="audit_log_integrity_violations",
        kind=MetricKind.COUNTER,
        description="Number of audit log integrity violations",
        label_names=("violation_type",),
        healthcare_category=_AUDIT,
        compliance_level=_CRITICAL,
    ),
    # Workflow performance
    MetricDefinition(
        name="workflow_completion_time",
        kind=MetricKind.HISTOGRAM,
        description="Time to complete healthcare workflows",
        unit="seconds",
        label_names=("workflow_type", "priority", "department"),
        buckets=(60, 300, 600, 1800, 3600, 7200, 14400),
        healthcare_category=_WORKFLOW,
        compliance_level=_MEDIUM,
    ),
    MetricDefinition(
        name="workflow_success_rate",
        kind=MetricKind.GAUGE,
        description="Percentage of successful workflow completions",
        unit="percent",
        label_names=("workflow_type", "department"),
        healthcare_category=_WORKFLOW,
        compliance_level=_HIGH,
    ),
    # System performance
    MetricDefinition(
        name="system_cpu_usage",
        kind=MetricKind.GAUGE,
        description="System CPU usage percentage",
        unit="percent",
        label_names=("instance", "service"),
    ),
    MetricDefinition(
        name="system_memory_usage",
        kind=MetricKind.GAUGE,
        description="System memory usage percentage",
        unit="percent",
        label_names=("instance", "service"),
    ),
    MetricDefinition(
        name="api_request_duration",
        kind=MetricKind.HISTOGRAM,
        description="API request duration",
        unit="seconds",
        label_names=("method", "endpoint", "status_code"),
        buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
    ),
    MetricDefinition(
        name="api_requests_total",
        kind=MetricKind.COUNTER,
        description="Total number of API requests",
        label_names=("method", "endpoint", "status_code"),
    ),
]


def register_healthcare_defaults(registry) -> int:
    """Registra el catálogo por defecto. Devuelve cuántas definiciones hay."""
    for definition in DEFAULT_METRICS:
        registry.register(definition)
    return len(DEFAULT_METRICS)
