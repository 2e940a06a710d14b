from .models import (
    AlertCondition,
    AlertSeverity,
    AlertSource,
    HealthcareImpact,
    MetricAlert,
)
from .manager import AlertManager
from .webhook import AlertWebhookNotifier

__all__ = [
    "AlertCondition",
    "AlertSeverity",
    "AlertSource",
    "HealthcareImpact",
    "MetricAlert",
    "AlertManager",
    "AlertWebhookNotifier",
]
