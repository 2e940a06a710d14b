"""Monitoring layer - Estadísticas y salud del motor."""

from .stats import EngineStats
from .health import HealthChecker, HealthStatus

__all__ = ["EngineStats", "HealthChecker", "HealthStatus"]
