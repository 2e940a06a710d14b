"""Módulo de endpoints HTTP.

Superficie fina sobre MetricsEngine organizada por función.
"""

from .health import router as health_router
from .metrics import router as metrics_router
from .alerts import router as alerts_router

__all__ = [
    "health_router",
    "metrics_router",
    "alerts_router",
]
