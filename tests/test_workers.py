"""Tests de workers de fondo y limpieza por retención."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from common.config import Settings
from metrics_api.aggregation import AggregationKind
from metrics_api.core.domain import MetricDefinition, MetricKind
from metrics_api.core.monitoring import EngineStats
from metrics_api.core.store import InMemoryMetricStore, aggregated_key, series_key
from metrics_api.engine import MetricsEngine
from metrics_api.registry import MetricRegistry
from metrics_api.workers import AggregationWorker, PeriodicWorker, RetentionCleaner

HOUR_MS = 60 * 60 * 1000


class CountingWorker(PeriodicWorker):
    name = "counting"

    def __init__(self, interval_seconds, stats=None, fail=False):
        super().__init__(interval_seconds, stats)
        self.calls = 0
        self.fail = fail
        self.called = threading.Event()

    def run_once(self):
        self.calls += 1
        self.called.set()
        if self.fail:
            raise RuntimeError("tick failed")


# =============================================================================
# PERIODIC WORKER
# =============================================================================

class TestPeriodicWorker:

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            CountingWorker(0)

    def test_runs_ticks_until_stopped(self):
        worker = CountingWorker(0.01)
        worker.start()
        assert worker.called.wait(timeout=2)
        worker.stop(timeout=2)

        calls = worker.calls
        time.sleep(0.05)
        assert worker.running is False
        assert worker.calls == calls >= 1

    def test_failing_tick_is_counted_and_loop_continues(self):
        stats = EngineStats()
        worker = CountingWorker(0.01, stats=stats, fail=True)
        worker.start()
        deadline = time.time() + 2
        while worker.calls < 2 and time.time() < deadline:
            time.sleep(0.01)
        worker.stop(timeout=2)

        assert worker.calls >= 2
        assert worker.errors == worker.ticks
        assert stats.worker_errors >= 2

    def test_tick_runs_inline(self):
        worker = CountingWorker(60)
        worker.tick()

        assert worker.calls == 1
        assert worker.get_stats()["ticks"] == 1

    def test_start_is_idempotent(self):
        worker = CountingWorker(60)
        worker.start()
        thread = worker._thread
        worker.start()

        assert worker._thread is thread
        worker.stop(timeout=2)

    def test_aggregation_worker_delegates(self):
        engine = MagicMock()
        worker = AggregationWorker(engine, interval_seconds=60)

        worker.run_once()

        engine.run_once.assert_called_once_with()
        assert worker.last_result is engine.run_once.return_value


# =============================================================================
# LIMPIEZA POR RETENCIÓN
# =============================================================================

class TestRetentionCleaner:

    @pytest.fixture
    def registry(self):
        registry = MetricRegistry()
        registry.register(MetricDefinition(name="m", kind=MetricKind.GAUGE))
        return registry

    def test_evicts_strictly_older_points(self, registry, clock):
        series = registry.series("m")
        cutoff = clock.now - HOUR_MS
        for ts in (cutoff - 2, cutoff - 1, cutoff, cutoff + 1):
            series.append(1.0, {}, ts)
        cleaner = RetentionCleaner(registry, None, retention_seconds=3600, clock=clock)

        result = cleaner.run_once()

        assert result.points_evicted == 2
        assert [p.timestamp for p in series.snapshot()] == [cutoff, cutoff + 1]

    def test_deletes_store_rows_before_cutoff(self, registry, clock):
        store = InMemoryMetricStore()
        cutoff = clock.now - HOUR_MS
        key = series_key("m")
        agg = aggregated_key("m", "avg", "5m")
        for ts in (cutoff - 1, cutoff):
            store.append(key, ts, {"ts": ts})
            store.append(agg, ts, {"ts": ts})
        cleaner = RetentionCleaner(
            registry, store, retention_seconds=3600, windows=("5m",), clock=clock
        )

        result = cleaner.run_once()

        assert result.rows_deleted == 2
        assert store.range_query(key, 0, 2**62) == [{"ts": cutoff}]
        assert store.range_query(agg, 0, 2**62) == [{"ts": cutoff}]

    def test_covers_every_rollup_key(self, registry, clock):
        store = MagicMock()
        store.delete_range.return_value = 0
        cleaner = RetentionCleaner(
            registry, store, retention_seconds=3600, windows=("1m", "1h"), clock=clock
        )

        cleaner.run_once()

        keys = {c.args[0] for c in store.delete_range.call_args_list}
        assert series_key("m") in keys
        assert len(keys) == 1 + 2 * len(AggregationKind)
        _, lo, hi = store.delete_range.call_args_list[0].args
        assert (lo, hi) == (0, clock.now - HOUR_MS - 1)

    def test_padded_windows_match_rollup_keys(self, registry, clock):
        store = MagicMock()
        store.delete_range.return_value = 0
        cleaner = RetentionCleaner(
            registry, store, retention_seconds=3600, windows=(" 5m ", "1h"), clock=clock
        )

        cleaner.run_once()

        keys = {c.args[0] for c in store.delete_range.call_args_list}
        assert aggregated_key("m", "avg", "5m") in keys
        assert aggregated_key("m", "avg", "1h") in keys

    def test_key_failure_isolated(self, registry, clock):
        store = MagicMock()

        def delete_range(key, lo, hi):
            if key == series_key("m"):
                raise ConnectionError("down")
            return 1

        store.delete_range.side_effect = delete_range
        stats = EngineStats()
        cleaner = RetentionCleaner(
            registry, store, stats=stats, retention_seconds=3600, windows=("1m",), clock=clock
        )

        result = cleaner.run_once()

        assert result.failures == [series_key("m")]
        assert result.rows_deleted == len(AggregationKind)
        assert stats.cleanup_failures == 1
        assert stats.cleanup_runs == 1

    def test_engine_run_cleanup(self, clock):
        settings = Settings(store_backend="memory", register_defaults=False, retention_seconds=60)
        store = InMemoryMetricStore()
        eng = MetricsEngine(store=store, settings=settings, clock=clock, start_workers=False)
        try:
            eng.register(MetricDefinition(name="m", kind=MetricKind.GAUGE))
            eng.gauge("m", 1)
            eng.flush()
            clock.advance(61_000)
            eng.gauge("m", 2)

            result = eng.run_cleanup()

            assert result.points_evicted == 1
            assert [p.value for p in eng.get_series("m")] == [2.0]
            assert store.range_query(series_key("m"), 0, 2**62) == []
        finally:
            eng.close()


# =============================================================================
# CICLO DE VIDA DEL MOTOR
# =============================================================================

class TestEngineLifecycle:

    def test_start_and_close(self, store, clock):
        settings = Settings(
            store_backend="memory",
            register_defaults=False,
            aggregation_interval_seconds=0.01,
            cleanup_interval_seconds=0.01,
        )
        eng = MetricsEngine(store=store, settings=settings, clock=clock)
        eng.register(MetricDefinition(name="m", kind=MetricKind.GAUGE))
        eng.gauge("m", 1)

        assert eng.health().healthy is True
        deadline = time.time() + 2
        while eng.stats.rollup_runs == 0 and time.time() < deadline:
            time.sleep(0.01)

        eng.close()
        eng.close()

        assert eng.stats.rollup_runs >= 1
        assert eng.stats.mirror_written == 1
        assert eng.aggregation_worker.running is False
        assert eng.cleanup_worker.running is False

    def test_context_manager_closes(self, store, settings, clock):
        with MetricsEngine(store=store, settings=settings, clock=clock) as eng:
            assert eng.mirror.running is True

        assert eng.closed is True
        assert eng.mirror.running is False

    def test_close_without_workers_drains_mirror(self, store, settings, clock):
        eng = MetricsEngine(store=store, settings=settings, clock=clock, start_workers=False)
        eng.register(MetricDefinition(name="m", kind=MetricKind.GAUGE))
        eng.gauge("m", 1)
        eng.gauge("m", 2)

        eng.close()

        assert len(store.range_query(series_key("m"), 0, 2**62)) == 2
        assert eng.mirror.pending == 0

    def test_registers_defaults_when_enabled(self, store, clock):
        settings = Settings(store_backend="memory", register_defaults=True)
        eng = MetricsEngine(store=store, settings=settings, clock=clock, start_workers=False)
        try:
            assert len(eng.list_definitions()) == 16
        finally:
            eng.close()
