from .registry import MetricRegistry
from .kpi_defaults import KPIDefaults, KPIPolarity, KPI_DEFAULTS, defaults_for
from .catalog import DEFAULT_METRICS, register_healthcare_defaults

__all__ = [
    "MetricRegistry",
    "KPIDefaults",
    "KPIPolarity",
    "KPI_DEFAULTS",
    "defaults_for",
    "DEFAULT_METRICS",
    "register_healthcare_defaults",
]
