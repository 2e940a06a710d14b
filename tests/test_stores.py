"""Tests de los stores: Redis (cliente mockeado) y en memoria."""

import json
from unittest.mock import MagicMock, patch

import pytest
import redis

from metrics_api.core.redis import RedisConnection, RedisMetricStore
from metrics_api.core.store import InMemoryMetricStore, aggregated_key, series_key


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.ping.return_value = True
    return client


@pytest.fixture
def redis_store(redis_client):
    connection = MagicMock(spec=RedisConnection)
    connection.client = redis_client
    return RedisMetricStore(connection)


# =============================================================================
# REDIS
# =============================================================================

class TestRedisMetricStore:

    def test_append_is_zadd_with_timestamp_score(self, redis_store, redis_client):
        redis_store.append("metrics:timeseries:m", 1234, {"value": 1.5, "labels": {}})

        redis_client.zadd.assert_called_once_with(
            "metrics:timeseries:m",
            {json.dumps({"value": 1.5, "labels": {}}, sort_keys=True): 1234},
        )

    def test_range_query_decodes_members(self, redis_store, redis_client):
        redis_client.zrangebyscore.return_value = ['{"value": 1}', b'{"value": 2}', "not-json"]

        rows = redis_store.range_query("k", 0, 100)

        redis_client.zrangebyscore.assert_called_once_with("k", 0, 100)
        assert rows == [{"value": 1}, {"value": 2}]

    def test_expire_and_delete_range(self, redis_store, redis_client):
        redis_client.zremrangebyscore.return_value = 3

        redis_store.expire("k", 60)
        removed = redis_store.delete_range("k", 0, 99)

        redis_client.expire.assert_called_once_with("k", 60)
        redis_client.zremrangebyscore.assert_called_once_with("k", 0, 99)
        assert removed == 3

    def test_save_definition_is_hset(self, redis_store, redis_client):
        redis_store.save_definition("metrics:definitions", "cpu", {"kind": "gauge"})

        redis_client.hset.assert_called_once_with(
            "metrics:definitions", "cpu", json.dumps({"kind": "gauge"})
        )

    def test_errors_propagate_to_caller(self, redis_store, redis_client):
        redis_client.zadd.side_effect = redis.ConnectionError("down")

        with pytest.raises(redis.ConnectionError):
            redis_store.append("k", 1, {})

    def test_ping_false_on_redis_error(self, redis_store, redis_client):
        redis_client.ping.side_effect = redis.ConnectionError("down")

        assert redis_store.ping() is False

    def test_uninitialized_client_raises(self):
        connection = MagicMock(spec=RedisConnection)
        connection.client = None
        store = RedisMetricStore(connection)

        with pytest.raises(redis.ConnectionError):
            store.append("k", 1, {})
        assert store.ping() is False


class TestRedisConnection:

    def test_connect_failure_returns_false(self):
        with patch("metrics_api.core.redis.connection.redis.Redis.from_url") as from_url:
            from_url.return_value.ping.side_effect = redis.ConnectionError("refused")
            conn = RedisConnection("redis://localhost:1/0")

            assert conn.connect() is False
            assert conn.is_connected is False

    def test_connect_success(self):
        with patch("metrics_api.core.redis.connection.redis.Redis.from_url") as from_url:
            from_url.return_value.ping.return_value = True
            conn = RedisConnection("redis://localhost:6379/0")

            assert conn.connect() is True
            assert conn.client is from_url.return_value
            from_url.assert_called_once()
            assert from_url.call_args.kwargs["decode_responses"] is True


# =============================================================================
# MEMORIA
# =============================================================================

class TestInMemoryMetricStore:

    def test_range_query_inclusive_and_ordered(self):
        store = InMemoryMetricStore()
        for ts in (30, 10, 20):
            store.append("k", ts, {"ts": ts})

        assert [r["ts"] for r in store.range_query("k", 10, 20)] == [10, 20]
        assert [r["ts"] for r in store.range_query("k", 0, 100)] == [10, 20, 30]

    def test_identical_member_same_score_stored_once(self):
        store = InMemoryMetricStore()
        store.append("k", 1, {"v": 1})
        store.append("k", 1, {"v": 1})

        assert len(store.range_query("k", 0, 10)) == 1

    def test_delete_range_counts(self):
        store = InMemoryMetricStore()
        for ts in range(5):
            store.append("k", ts, {"ts": ts})

        assert store.delete_range("k", 0, 2) == 3
        assert [r["ts"] for r in store.range_query("k", 0, 10)] == [3, 4]
        assert store.delete_range("missing", 0, 10) == 0

    def test_ttl_expires_lazily(self):
        now = [1000.0]
        store = InMemoryMetricStore(clock=lambda: now[0])
        store.append("k", 1, {"v": 1})
        store.expire("k", 60)

        now[0] += 61

        assert store.range_query("k", 0, 10) == []

    def test_key_helpers(self):
        assert series_key("cpu") == "metrics:timeseries:cpu"
        assert aggregated_key("cpu", "avg", "5m") == "metrics:aggregated:cpu:avg:5m"
        assert series_key("cpu", "ns") == "ns:metrics:timeseries:cpu"
