"""MetricsEngine - raíz de composición del motor de métricas.

Construye y cablea registry, buffer, agregación, detección de anomalías,
KPIs, alertas, bus de notificaciones, mirror al store y workers de fondo.
No hay singleton de módulo: el proceso crea un MetricsEngine y lo cierra
con close().
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from common.config import Settings

from .aggregation import AggregatedMetric, AggregationEngine, AggregationKind, RollupResult
from .aggregation.engine import DEFAULT_PERCENTILES
from .alerts import AlertManager, AlertWebhookNotifier, MetricAlert
from .anomaly import AnomalyDetector
from .core.clock import Clock, now_ms
from .core.domain import HealthcareCategory, MetricDefinition, MetricPoint
from .core.monitoring import EngineStats, HealthChecker, HealthStatus
from .core.redis import RedisConnection, RedisMetricStore
from .core.resilience import CircuitBreaker
from .core.store import InMemoryMetricStore, MetricStore
from .kpi import KPITracker, TrackedKPI
from .notifications import EventType, NotificationBus, Subscription
from .registry import MetricRegistry, register_healthcare_defaults
from .series import MirrorWriter, TimeSeriesBuffer
from .workers import AggregationWorker, CleanupResult, CleanupWorker, RetentionCleaner

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> MetricStore:
    """Crea el store según METRICS_STORE.

    Con Redis caído no se falla: el motor arranca igual, la memoria es
    autoritativa y el circuit breaker del mirror corta los reintentos.
    """
    if settings.store_backend == "memory":
        logger.info("[ENGINE] Using in-memory metric store")
        return InMemoryMetricStore()
    if settings.store_backend != "redis":
        raise ValueError(f"Unknown METRICS_STORE backend: {settings.store_backend!r}")

    connection = RedisConnection(settings.redis_url)
    if not connection.connect():
        logger.warning("[ENGINE] Redis unavailable; mirror writes will fail until it recovers")
    return RedisMetricStore(connection)


class MetricsEngine:
    """Motor de métricas en proceso.

    Uso:
        engine = MetricsEngine(settings=get_settings())
        engine.gauge("queue_depth", 12)
        ...
        engine.close()

    También se puede usar como context manager.
    """

    def __init__(
        self,
        store: Optional[MetricStore] = None,
        settings: Optional[Settings] = None,
        clock: Clock = now_ms,
        start_workers: bool = True,
        default_labels: Optional[Mapping[str, object]] = None,
    ):
        self.settings = settings or Settings()
        self._owns_store = store is None
        self.store: MetricStore = store if store is not None else create_store(self.settings)
        self._clock = clock
        self._closed = False
        self._close_lock = threading.Lock()

        s = self.settings
        self.stats = EngineStats()
        self.bus = NotificationBus(
            default_maxsize=s.notify_queue_size,
            on_drop=lambda _event: self.stats.incr("notifications_dropped"),
        )
        self.registry = MetricRegistry(
            store=self.store,
            bus=self.bus,
            stats=self.stats,
            max_points=s.max_points,
            namespace=s.namespace,
        )
        self.alerts = AlertManager(self.registry, bus=self.bus, clock=clock)
        self.kpis = KPITracker(self.registry, self.alerts, bus=self.bus, clock=clock)

        self.mirror = MirrorWriter(
            self.store,
            self.stats,
            breaker=CircuitBreaker("metric-store-mirror"),
            max_queue_size=s.mirror_queue_size,
        )
        self.buffer = TimeSeriesBuffer(
            self.registry,
            mirror=self.mirror,
            alerts=self.alerts,
            kpis=self.kpis,
            bus=self.bus,
            stats=self.stats,
            retention_seconds=s.retention_seconds,
            namespace=s.namespace,
            default_labels=default_labels,
            clock=clock,
        )
        self.aggregation = AggregationEngine(
            self.registry,
            self.store,
            stats=self.stats,
            windows=s.aggregation_windows,
            retention_seconds=s.retention_seconds,
            namespace=s.namespace,
            clock=clock,
        )
        self.anomalies = AnomalyDetector(self.registry)
        self.cleaner = RetentionCleaner(
            self.registry,
            self.store,
            stats=self.stats,
            retention_seconds=s.retention_seconds,
            windows=s.aggregation_windows,
            namespace=s.namespace,
            clock=clock,
        )
        self.aggregation_worker = AggregationWorker(
            self.aggregation, s.aggregation_interval_seconds, stats=self.stats
        )
        self.cleanup_worker = CleanupWorker(
            self.cleaner, s.cleanup_interval_seconds, stats=self.stats
        )
        self._health = HealthChecker(self.store, self.mirror.breaker)

        self.webhook: Optional[AlertWebhookNotifier] = None
        if s.alert_webhook_url:
            self.webhook = AlertWebhookNotifier(self.bus, s.alert_webhook_url)

        if s.register_defaults:
            count = register_healthcare_defaults(self.registry)
            logger.info("[ENGINE] Registered %d default metrics", count)

        if start_workers:
            self.start()

    # Lifecycle

    def start(self) -> None:
        self.mirror.start()
        self.aggregation_worker.start()
        self.cleanup_worker.start()
        if self.webhook is not None:
            self.webhook.start()
        logger.info(
            "[ENGINE] Started namespace=%r windows=%s retention=%ds",
            self.settings.namespace,
            self.aggregation.windows,
            self.settings.retention_seconds,
        )

    def close(self) -> None:
        """Detiene workers, drena el mirror y libera el store. Idempotente."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self.aggregation_worker.stop()
        self.cleanup_worker.stop()
        self.mirror.stop(drain=True)
        if self.webhook is not None:
            self.webhook.stop()
        self.bus.close()
        if self._owns_store:
            self.store.close()
        logger.info("[ENGINE] Closed %s", self.stats)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "MetricsEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # Registry

    def register(self, definition: MetricDefinition) -> MetricDefinition:
        return self.registry.register(definition)

    def lookup(self, name: str) -> MetricDefinition:
        return self.registry.lookup(name)

    def list_definitions(self) -> List[MetricDefinition]:
        return self.registry.list_definitions()

    # Writes

    def record(
        self,
        name: str,
        value: float,
        labels: Optional[Mapping[str, object]] = None,
        timestamp: Optional[int] = None,
    ) -> MetricPoint:
        return self.buffer.record(name, value, labels, timestamp)

    def increment(self, name: str, labels=None, amount: float = 1) -> MetricPoint:
        return self.buffer.increment(name, labels, amount)

    def gauge(self, name: str, value: float, labels=None) -> MetricPoint:
        return self.buffer.gauge(name, value, labels)

    def histogram(self, name: str, value: float, labels=None) -> MetricPoint:
        return self.buffer.histogram(name, value, labels)

    def summary(self, name: str, value: float, labels=None) -> MetricPoint:
        return self.buffer.summary(name, value, labels)

    # Reads

    def get_series(self, name: str) -> Tuple[MetricPoint, ...]:
        return self.buffer.get_series(name)

    def latest_point(self, name: str) -> Optional[MetricPoint]:
        return self.buffer.latest_point(name)

    def counter_total(self, name: str, window_ms: Optional[int] = None) -> float:
        return self.buffer.counter_total(name, window_ms)

    def calculate_percentiles(
        self,
        name: str,
        percentiles: Iterable[float] = DEFAULT_PERCENTILES,
        time_range: Optional[Tuple[int, int]] = None,
    ) -> Dict[float, float]:
        return self.aggregation.calculate_percentiles(name, percentiles, time_range)

    def calculate_rate(self, name: str, window_ms: int = 60_000) -> float:
        return self.aggregation.calculate_rate(name, window_ms)

    def get_aggregated_metrics(
        self,
        name: str,
        aggregation: AggregationKind,
        window: str,
        labels: Optional[Mapping[str, object]] = None,
        limit: int = 100,
    ) -> List[AggregatedMetric]:
        return self.aggregation.get_aggregated_metrics(name, aggregation, window, labels, limit)

    def histogram_buckets(
        self, name: str, time_range: Optional[Tuple[int, int]] = None
    ) -> List[Tuple[float, int]]:
        return self.aggregation.histogram_buckets(name, time_range)

    def detect_anomalies(
        self, name: str, z_threshold: float = 2.0, window_size: int = 100
    ) -> List[MetricPoint]:
        return self.anomalies.detect_anomalies(name, z_threshold, window_size)

    # Alerts & KPIs

    def add_alert(
        self,
        metric: str,
        condition: str,
        threshold: float,
        severity: str = "warning",
        healthcare_impact: Optional[str] = None,
    ) -> str:
        return self.alerts.add_alert(metric, condition, threshold, severity, healthcare_impact)

    def acknowledge_alert(self, alert_id: str) -> bool:
        return self.alerts.acknowledge_alert(alert_id)

    def get_alert(self, alert_id: str) -> MetricAlert:
        return self.alerts.get_alert(alert_id)

    def get_active_alerts(self) -> List[MetricAlert]:
        return self.alerts.get_active_alerts()

    def list_alerts(self, metric: Optional[str] = None) -> List[MetricAlert]:
        return self.alerts.list_alerts(metric)

    def get_kpis(self) -> List[TrackedKPI]:
        return self.kpis.get_kpis()

    def get_kpis_by_category(self, category: HealthcareCategory) -> List[TrackedKPI]:
        return self.kpis.get_kpis_by_category(category)

    # Notifications

    def subscribe(
        self,
        event_types: Optional[Iterable[EventType]] = None,
        maxsize: Optional[int] = None,
    ) -> Subscription:
        return self.bus.subscribe(event_types, maxsize)

    def unsubscribe(self, subscription: Subscription) -> None:
        self.bus.unsubscribe(subscription)

    # Maintenance

    def run_aggregation(self, now: Optional[int] = None) -> RollupResult:
        return self.aggregation.run_once(now)

    def run_cleanup(self, now: Optional[int] = None) -> CleanupResult:
        return self.cleaner.run_once(now)

    def flush(self) -> None:
        """Bloquea hasta que el mirror haya escrito lo encolado."""
        self.mirror.flush()

    def health(self) -> HealthStatus:
        return self._health.get_status(
            aggregation_running=self.aggregation_worker.running,
            cleanup_running=self.cleanup_worker.running,
        )

    def get_dashboard_snapshot(self) -> dict:
        all_series = self.registry.all_series()
        series = {name: [p.to_dict() for p in ts.snapshot()] for name, ts in all_series.items()}
        return {
            "metrics": [d.to_dict() for d in self.list_definitions()],
            "time_series": series,
            "kpis": [k.to_dict() for k in self.get_kpis()],
            "active_alerts": [a.to_dict() for a in self.get_active_alerts()],
            "system_status": {
                "total_metrics": len(self.registry),
                "total_data_points": sum(len(points) for points in series.values()),
                "mirror_pending": self.mirror.pending,
                "subscribers": self.bus.subscriber_count,
                "health": self.health().to_dict(),
                "stats": self.stats.to_dict(),
                "workers": [
                    self.aggregation_worker.get_stats(),
                    self.cleanup_worker.get_stats(),
                ],
            },
        }
