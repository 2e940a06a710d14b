"""Resiliencia frente a caídas del store."""

from .circuit_breaker import CircuitBreaker
from .circuit_breaker_config import CircuitBreakerConfig, CircuitState

__all__ = ["CircuitBreaker", "CircuitBreakerConfig", "CircuitState"]
