"""MetricStore sobre sorted sets de Redis.

- append        -> ZADD key score member
- range_query   -> ZRANGEBYSCORE key min max
- expire        -> EXPIRE key ttl
- delete_range  -> ZREMRANGEBYSCORE key min max
- save_definition -> HSET metrics:definitions name json
"""

from __future__ import annotations

import json
import logging
from typing import Any, List

import redis

from .connection import RedisConnection

logger = logging.getLogger(__name__)


class RedisMetricStore:
    """Implementación Redis del MetricStore.

    No captura errores de Redis: el motor los aísla por operación.
    """

    def __init__(self, connection: RedisConnection):
        self._conn = connection

    @property
    def _client(self) -> Any:
        client = self._conn.client
        if client is None:
            raise redis.ConnectionError("Redis client not initialized")
        return client

    def append(self, key: str, timestamp: int, payload: dict) -> None:
        member = json.dumps(payload, sort_keys=True)
        self._client.zadd(key, {member: int(timestamp)})

    def range_query(self, key: str, from_score: int, to_score: int) -> List[dict]:
        raw = self._client.zrangebyscore(key, from_score, to_score)
        result = []
        for member in raw:
            if isinstance(member, bytes):
                member = member.decode("utf-8")
            try:
                result.append(json.loads(member))
            except ValueError:
                logger.warning("[REDIS] Skipping malformed member in %s", key)
        return result

    def expire(self, key: str, ttl_seconds: int) -> None:
        self._client.expire(key, int(ttl_seconds))

    def delete_range(self, key: str, from_score: int, to_score: int) -> int:
        return int(self._client.zremrangebyscore(key, from_score, to_score))

    def save_definition(self, hash_key: str, name: str, payload: dict) -> None:
        self._client.hset(hash_key, name, json.dumps(payload, sort_keys=True))

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    def close(self) -> None:
        self._conn.disconnect()
