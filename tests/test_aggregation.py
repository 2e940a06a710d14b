"""Tests de agregación: percentiles, rate, rollups y aislamiento de fallos."""

from unittest.mock import MagicMock

import pytest

from metrics_api.aggregation import AggregationEngine, AggregationKind
from metrics_api.aggregation import calculations
from metrics_api.core.domain import MetricDefinition, MetricKind, MetricPoint
from metrics_api.core.monitoring import EngineStats
from metrics_api.core.store import InMemoryMetricStore, aggregated_key
from metrics_api.errors import NotRegisteredError
from metrics_api.registry import MetricRegistry

T0 = 1_700_000_000_000


def _points(values, start=T0, step=1000):
    return [MetricPoint(timestamp=start + i * step, value=float(v)) for i, v in enumerate(values)]


# =============================================================================
# ESTADÍSTICOS PUROS
# =============================================================================

class TestCalculations:

    def test_nearest_rank_one_to_hundred(self):
        result = calculations.percentiles(range(1, 101), [50, 95, 99])

        assert result == {50: 51.0, 95: 96.0, 99: 100.0}

    def test_percentiles_are_order_independent(self):
        values = list(range(1, 101))
        shuffled = values[::-1]

        assert calculations.percentiles(values, [50]) == calculations.percentiles(shuffled, [50])

    def test_nearest_rank_clamped(self):
        assert calculations.nearest_rank([1.0, 2.0, 3.0], 100) == 3.0
        assert calculations.nearest_rank([1.0, 2.0, 3.0], 0) == 1.0
        assert calculations.nearest_rank([], 50) == 0.0

    def test_rate_needs_two_points(self):
        assert calculations.rate([]) == 0.0
        assert calculations.rate(_points([5])) == 0.0

    def test_rate_zero_elapsed(self):
        pts = [MetricPoint(T0, 1.0), MetricPoint(T0, 9.0)]

        assert calculations.rate(pts) == 0.0

    def test_rate_per_second(self):
        pts = _points([10, 20, 40], step=2000)

        assert calculations.rate(pts) == pytest.approx(30 / 4)

    def test_aggregate_all_kinds(self):
        result = calculations.aggregate(_points([4, 1, 3, 2]))

        assert result[AggregationKind.SUM] == 10.0
        assert result[AggregationKind.AVG] == 2.5
        assert result[AggregationKind.MIN] == 1.0
        assert result[AggregationKind.MAX] == 4.0
        assert result[AggregationKind.COUNT] == 4.0
        assert set(result) == set(AggregationKind)

    def test_population_stats(self):
        mean, std = calculations.population_stats([2, 4, 4, 4, 5, 5, 7, 9])

        assert mean == 5.0
        assert std == 2.0


# =============================================================================
# CONSULTAS SÍNCRONAS
# =============================================================================

class TestOnDemandQueries:

    def test_calculate_percentiles(self, engine, queue_depth):
        for v in range(1, 101):
            engine.gauge("queue_depth", v)

        result = engine.calculate_percentiles("queue_depth", [50, 99])

        assert result == {50: 51.0, 99: 100.0}

    def test_percentiles_time_range(self, engine, queue_depth):
        for i, v in enumerate([100, 1, 2, 3]):
            engine.record("queue_depth", v, timestamp=T0 + i * 1000)

        result = engine.calculate_percentiles("queue_depth", [99], time_range=(T0 + 1000, T0 + 3000))

        assert result == {99: 3.0}

    def test_percentiles_unknown_metric(self, engine):
        with pytest.raises(NotRegisteredError):
            engine.calculate_percentiles("nope")

    def test_calculate_rate_with_one_point_is_zero(self, engine, queue_depth):
        engine.gauge("queue_depth", 10)

        assert engine.calculate_rate("queue_depth") == 0.0

    def test_calculate_rate_over_window(self, engine, queue_depth, clock):
        engine.gauge("queue_depth", 10)
        clock.advance(10_000)
        engine.gauge("queue_depth", 30)

        assert engine.calculate_rate("queue_depth", window_ms=60_000) == pytest.approx(2.0)

    def test_histogram_buckets(self, engine):
        engine.register(
            MetricDefinition(name="latency", kind=MetricKind.HISTOGRAM, buckets=(0.1, 0.5, 1.0))
        )
        for v in [0.05, 0.2, 0.3, 0.7, 3.0]:
            engine.histogram("latency", v)

        buckets = engine.histogram_buckets("latency")

        assert buckets == [(0.1, 1), (0.5, 3), (1.0, 4), (float("inf"), 5)]

    def test_histogram_buckets_non_histogram_empty(self, engine, queue_depth):
        engine.gauge("queue_depth", 1)

        assert engine.histogram_buckets("queue_depth") == []


# =============================================================================
# ROLLUPS
# =============================================================================

class TestRollups:

    def test_rollup_writes_one_row_per_kind_and_window(self, engine, queue_depth, store, clock):
        for v in [5, 12, 30]:
            engine.gauge("queue_depth", v)

        result = engine.run_aggregation()

        windows = len(engine.aggregation.windows)
        assert result.metrics_processed == 1
        assert result.rows_written == windows * len(AggregationKind)
        assert result.failures == []
        rows = store.range_query(aggregated_key("queue_depth", "max", "1m"), 0, 2**62)
        assert rows[0]["value"] == 30.0
        assert rows[0]["timestamp"] == clock.now

    def test_empty_windows_are_skipped(self, engine, queue_depth, clock):
        engine.gauge("queue_depth", 1)
        clock.advance(2 * 60_000)

        result = engine.run_aggregation()

        # 1m has no points, 5m/15m/1h/24h do.
        assert result.windows_skipped == 1
        assert result.rows_written == 4 * len(AggregationKind)

    def test_metrics_without_points_are_not_processed(self, engine, queue_depth):
        result = engine.run_aggregation()

        assert result.metrics_processed == 0
        assert result.rows_written == 0

    def test_get_aggregated_metrics_reads_back(self, engine, queue_depth, clock):
        engine.gauge("queue_depth", 4)
        engine.run_aggregation()
        clock.advance(60_000)
        engine.gauge("queue_depth", 8)
        engine.run_aggregation()

        rows = engine.get_aggregated_metrics("queue_depth", AggregationKind.MAX, "5m")

        assert [r.value for r in rows] == [4.0, 8.0]
        assert engine.get_aggregated_metrics("queue_depth", "max", "5m", limit=1)[0].value == 8.0

    def test_get_aggregated_metrics_filters_labels_before_limit(self, engine, queue_depth, store):
        key = aggregated_key("queue_depth", "max", "5m")
        for i, host in enumerate(["a", "b", "a", "b", "b"]):
            store.append(key, T0 + i, {"value": i, "timestamp": T0 + i, "labels": {"host": host}})

        rows = engine.get_aggregated_metrics("queue_depth", "max", "5m", {"host": "a"}, limit=2)

        assert [r.value for r in rows] == [0.0, 2.0]

    def test_get_aggregated_metrics_non_positive_limit(self, engine, queue_depth, store):
        key = aggregated_key("queue_depth", "max", "5m")
        store.append(key, T0, {"value": 1, "timestamp": T0})

        assert engine.get_aggregated_metrics("queue_depth", "max", "5m", limit=0) == []
        assert engine.get_aggregated_metrics("queue_depth", "max", "5m", limit=-1) == []

    def test_rollup_isolation_on_store_failure(self, clock):
        stats = EngineStats()
        registry = MetricRegistry(stats=stats)
        for name in ("a", "b"):
            registry.register(MetricDefinition(name=name, kind=MetricKind.GAUGE))
            registry.series(name).append(1.0, {}, clock.now)

        store = MagicMock()

        def append(key, timestamp, payload):
            if key.startswith("metrics:aggregated:a:"):
                raise ConnectionError("store down")

        store.append.side_effect = append
        agg = AggregationEngine(registry, store, stats=stats, windows=("1m", "5m"), clock=clock)

        result = agg.run_once()

        assert sorted(result.failures) == ["a:1m", "a:5m"]
        assert result.rows_written == 2 * len(AggregationKind)
        assert stats.rollup_failures == 2
        assert stats.rollup_runs == 1

    def test_rollup_survives_every_write_failing(self, clock):
        registry = MetricRegistry()
        registry.register(MetricDefinition(name="a", kind=MetricKind.GAUGE))
        registry.series("a").append(1.0, {}, clock.now)
        store = MagicMock()
        store.append.side_effect = ConnectionError("down")
        agg = AggregationEngine(registry, store, windows=("1m",), clock=clock)

        result = agg.run_once()

        assert result.failures == ["a:1m"]
        assert result.rows_written == 0

    def test_rollup_rows_expire_with_retention(self, clock):
        registry = MetricRegistry()
        registry.register(MetricDefinition(name="a", kind=MetricKind.GAUGE))
        registry.series("a").append(1.0, {}, clock.now)
        store = MagicMock()
        agg = AggregationEngine(
            registry, store, windows=("1m",), retention_seconds=3600, clock=clock
        )

        agg.run_once()

        store.expire.assert_any_call(aggregated_key("a", "sum", "1m"), 3600)

    def test_namespace_prefixes_keys(self, clock):
        registry = MetricRegistry()
        registry.register(MetricDefinition(name="a", kind=MetricKind.GAUGE))
        registry.series("a").append(1.0, {}, clock.now)
        store = InMemoryMetricStore()
        agg = AggregationEngine(registry, store, windows=("1m",), namespace="ns", clock=clock)

        agg.run_once()

        assert "ns:metrics:aggregated:a:p99:1m" in store.keys()
