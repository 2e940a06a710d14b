from .models import ComplianceImpact, KPIThreshold, KPITrend, TrackedKPI
from .tracker import KPITracker, classify_breach

__all__ = [
    "ComplianceImpact",
    "KPIThreshold",
    "KPITrend",
    "TrackedKPI",
    "KPITracker",
    "classify_breach",
]
