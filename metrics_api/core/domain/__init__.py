"""Domain layer - Modelos de métricas."""

from .definition import (
    ComplianceLevel,
    HealthcareCategory,
    MetricDefinition,
    MetricKind,
)
from .point import Labels, LabelValue, MetricPoint
from .windows import DEFAULT_WINDOWS, parse_window, parse_windows

__all__ = [
    "ComplianceLevel",
    "HealthcareCategory",
    "MetricDefinition",
    "MetricKind",
    "Labels",
    "LabelValue",
    "MetricPoint",
    "DEFAULT_WINDOWS",
    "parse_window",
    "parse_windows",
]
