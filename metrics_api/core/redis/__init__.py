"""Redis layer - Store de series temporales en sorted sets."""

from .connection import RedisConnection
from .store import RedisMetricStore

__all__ = ["RedisConnection", "RedisMetricStore"]
