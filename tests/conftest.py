"""Fixtures compartidas.

El motor se construye sobre InMemoryMetricStore, sin workers arrancados y con
un reloj manual en milisegundos para que los tests de ciclo de vida sean
deterministas.
"""

import pytest

from common.config import Settings
from metrics_api.core.domain import MetricDefinition, MetricKind
from metrics_api.core.store import InMemoryMetricStore
from metrics_api.engine import MetricsEngine

T0 = 1_700_000_000_000


class ManualClock:
    """Reloj en ms controlado por el test."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store() -> InMemoryMetricStore:
    return InMemoryMetricStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(store_backend="memory", register_defaults=False)


@pytest.fixture
def engine(store, settings, clock):
    eng = MetricsEngine(store=store, settings=settings, clock=clock, start_workers=False)
    yield eng
    eng.close()


@pytest.fixture
def queue_depth(engine) -> MetricDefinition:
    return engine.register(
        MetricDefinition(name="queue_depth", kind=MetricKind.GAUGE, description="Queue depth")
    )
