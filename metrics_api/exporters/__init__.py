from .cloudwatch import format_cloudwatch
from .prometheus import CONTENT_TYPE as PROMETHEUS_CONTENT_TYPE
from .prometheus import EngineCollector, build_registry, format_prometheus

__all__ = [
    "format_cloudwatch",
    "format_prometheus",
    "build_registry",
    "EngineCollector",
    "PROMETHEUS_CONTENT_TYPE",
]
