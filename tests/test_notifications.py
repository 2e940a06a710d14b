"""Tests del bus de notificaciones."""

from metrics_api.notifications import EventType, NotificationBus


class TestNotificationBus:

    def test_publish_without_subscribers(self):
        bus = NotificationBus()

        assert bus.publish(EventType.METRIC_RECORDED, {"metric": "m"}) == 0

    def test_filters_by_event_type(self):
        bus = NotificationBus()
        alerts_only = bus.subscribe([EventType.ALERT_TRIGGERED])
        everything = bus.subscribe()

        bus.publish(EventType.METRIC_RECORDED, {"metric": "m"})
        bus.publish(EventType.ALERT_TRIGGERED, {"alert": {}})

        assert [e.type for e in alerts_only.drain()] == [EventType.ALERT_TRIGGERED]
        assert len(everything.drain()) == 2

    def test_full_queue_drops_without_blocking(self):
        dropped = []
        bus = NotificationBus(on_drop=dropped.append)
        slow = bus.subscribe(maxsize=2)

        delivered = [bus.publish(EventType.METRIC_RECORDED, {"i": i}) for i in range(5)]

        assert delivered == [1, 1, 0, 0, 0]
        assert slow.dropped == 3
        assert len(dropped) == 3
        assert [e.payload["i"] for e in slow.drain()] == [0, 1]

    def test_unsubscribe_stops_delivery(self):
        bus = NotificationBus()
        sub = bus.subscribe()
        bus.unsubscribe(sub)

        bus.publish(EventType.METRIC_RECORDED, {})

        assert sub.qsize() == 0
        assert bus.subscriber_count == 0

    def test_get_times_out(self):
        sub = NotificationBus().subscribe()

        assert sub.get(timeout=0.01) is None

    def test_engine_counts_dropped_notifications(self, engine, queue_depth):
        engine.subscribe([EventType.METRIC_RECORDED], maxsize=1)

        engine.gauge("queue_depth", 1)
        engine.gauge("queue_depth", 2)
        engine.gauge("queue_depth", 3)

        assert engine.stats.notifications_dropped == 2

    def test_record_publishes_metric_recorded(self, engine, queue_depth, clock):
        sub = engine.subscribe([EventType.METRIC_RECORDED])

        engine.gauge("queue_depth", 4)

        event = sub.get(timeout=1)
        assert event.payload == {
            "metric": "queue_depth",
            "value": 4.0,
            "labels": {},
            "timestamp": clock.now,
        }
