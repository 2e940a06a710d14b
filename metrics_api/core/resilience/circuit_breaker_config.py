"""Configuración y estados del circuit breaker del store."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    recovery_timeout_seconds: float = 30.0
    success_threshold: int = 2

    @classmethod
    def from_env(cls) -> "CircuitBreakerConfig":
        return cls(
            failure_threshold=int(os.getenv("CB_FAILURE_THRESHOLD", "5")),
            recovery_timeout_seconds=float(os.getenv("CB_RECOVERY_TIMEOUT", "30")),
            success_threshold=int(os.getenv("CB_SUCCESS_THRESHOLD", "2")),
        )
