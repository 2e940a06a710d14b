"""Tests de TimeSeries y TimeSeriesBuffer (record y wrappers)."""

import math
import threading
from unittest.mock import MagicMock

import pytest

from metrics_api.core.domain import MetricDefinition, MetricKind
from metrics_api.errors import InvalidLabelsError, InvalidValueError, NotRegisteredError
from metrics_api.series import TimeSeries

T0 = 1_700_000_000_000


# =============================================================================
# TIME SERIES ACOTADA
# =============================================================================

class TestTimeSeries:

    def test_bounded_buffer_keeps_last_max_points(self):
        series = TimeSeries("m", max_points=5)
        for i in range(12):
            series.append(float(i), {}, T0 + i)

        values = [p.value for p in series.snapshot()]
        assert len(series) == 5
        assert values == [7.0, 8.0, 9.0, 10.0, 11.0]
        assert series.evicted_total == 7

    def test_out_of_order_clamped_to_last_timestamp(self):
        series = TimeSeries("m")
        series.append(1.0, {}, T0 + 100)
        point, clamped = series.append(2.0, {}, T0 + 50)

        assert clamped is True
        assert point.timestamp == T0 + 100

    def test_evict_before_is_strict(self):
        series = TimeSeries("m")
        for i in range(5):
            series.append(float(i), {}, T0 + i * 10)

        removed = series.evict_before(T0 + 20)

        assert removed == 2
        assert series.snapshot()[0].timestamp == T0 + 20

    def test_tail_and_latest(self):
        series = TimeSeries("m")
        assert series.latest() is None
        for i in range(4):
            series.append(float(i), {}, T0 + i)

        assert [p.value for p in series.tail(2)] == [2.0, 3.0]
        assert len(series.tail(10)) == 4
        assert series.latest().value == 3.0

    def test_concurrent_appends_never_exceed_capacity(self):
        series = TimeSeries("m", max_points=100)

        def writer(offset):
            for i in range(500):
                series.append(float(i), {}, T0 + offset + i)

        threads = [threading.Thread(target=writer, args=(k * 1000,)) for k in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snap = series.snapshot()
        assert len(snap) == 100
        assert all(a.timestamp <= b.timestamp for a, b in zip(snap, snap[1:]))


# =============================================================================
# RECORD
# =============================================================================

class TestRecord:

    def test_record_unknown_metric_raises(self, engine):
        with pytest.raises(NotRegisteredError):
            engine.record("nope", 1.0)

    def test_record_uses_clock_and_returns_point(self, engine, queue_depth, clock):
        point = engine.record("queue_depth", 5)

        assert point.timestamp == clock.now
        assert point.value == 5.0
        assert engine.get_series("queue_depth") == (point,)

    def test_get_series_is_snapshot(self, engine, queue_depth):
        engine.gauge("queue_depth", 1)
        snap = engine.get_series("queue_depth")
        engine.gauge("queue_depth", 2)

        assert len(snap) == 1
        assert len(engine.get_series("queue_depth")) == 2

    @pytest.mark.parametrize("bad", [math.nan, math.inf, "abc", None, True])
    def test_invalid_values_rejected(self, engine, queue_depth, bad):
        with pytest.raises(InvalidValueError):
            engine.record("queue_depth", bad)
        assert engine.get_series("queue_depth") == ()

    def test_undeclared_labels_dropped_and_counted(self, engine):
        engine.register(MetricDefinition(name="cpu", kind=MetricKind.GAUGE, label_names=("host",)))

        point = engine.record("cpu", 50, {"host": "a", "pod": "x", "zone": "z"})

        assert point.labels == {"host": "a"}
        assert engine.stats.labels_dropped == 2

    def test_non_scalar_label_value_rejected(self, engine):
        engine.register(MetricDefinition(name="cpu", kind=MetricKind.GAUGE, label_names=("host",)))

        with pytest.raises(InvalidLabelsError):
            engine.record("cpu", 50, {"host": ["a", "b"]})

    def test_default_labels_merged_under_caller(self, store, settings, clock):
        from metrics_api.engine import MetricsEngine

        eng = MetricsEngine(
            store=store,
            settings=settings,
            clock=clock,
            start_workers=False,
            default_labels={"service": "api", "env": "prod"},
        )
        try:
            eng.register(
                MetricDefinition(name="cpu", kind=MetricKind.GAUGE, label_names=("service", "host"))
            )
            point = eng.record("cpu", 1, {"host": "h1", "service": "worker"})

            assert point.labels == {"service": "worker", "host": "h1"}
        finally:
            eng.close()

    def test_out_of_order_record_counted(self, engine, queue_depth):
        engine.record("queue_depth", 1, timestamp=T0 + 1000)
        point = engine.record("queue_depth", 2, timestamp=T0 + 10)

        assert point.timestamp == T0 + 1000
        assert engine.stats.out_of_order_clamped == 1

    def test_record_enqueues_mirror_write(self, engine, queue_depth, store):
        engine.gauge("queue_depth", 3)
        engine.flush()

        rows = store.range_query("metrics:timeseries:queue_depth", 0, 2**62)
        assert len(rows) == 1
        assert rows[0]["value"] == 3.0

    def test_side_effect_failure_does_not_fail_record(self, engine, queue_depth):
        engine.buffer._alerts = MagicMock()
        engine.buffer._alerts.evaluate.side_effect = RuntimeError("boom")

        point = engine.gauge("queue_depth", 3)

        assert point.value == 3.0
        assert engine.stats.side_effect_errors == 1


# =============================================================================
# COUNTERS
# =============================================================================

class TestCounters:

    @pytest.fixture
    def requests_total(self, engine):
        return engine.register(
            MetricDefinition(name="requests_total", kind=MetricKind.COUNTER, label_names=("route",))
        )

    def test_increment_stores_delta(self, engine, requests_total):
        engine.increment("requests_total", {"route": "/a"})
        engine.increment("requests_total", {"route": "/a"}, amount=4)

        values = [p.value for p in engine.get_series("requests_total")]
        assert values == [1.0, 4.0]
        assert engine.counter_total("requests_total") == 5.0

    def test_negative_increment_rejected(self, engine, requests_total):
        with pytest.raises(InvalidValueError):
            engine.increment("requests_total", amount=-1)

    def test_counter_total_over_window(self, engine, requests_total, clock):
        engine.increment("requests_total", amount=10)
        clock.advance(120_000)
        engine.increment("requests_total", amount=3)

        assert engine.counter_total("requests_total", window_ms=60_000) == 3.0
