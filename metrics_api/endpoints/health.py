"""Health, Prometheus scrape y dashboard."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..dependencies import get_engine
from ..engine import MetricsEngine
from ..exporters import format_prometheus

router = APIRouter(tags=["health"])


@router.get("/health")
def health(engine: MetricsEngine = Depends(get_engine)):
    """Liveness + estado de workers y store.

    Siempre 200 si el proceso responde; `status` es "degraded" si algún
    worker está caído (el store caído no degrada: la memoria es autoritativa).
    """
    status = engine.health()
    return {
        "status": "ok" if status.healthy else "degraded",
        **status.to_dict(),
    }


@router.get("/metrics", response_class=Response)
def prometheus_metrics(engine: MetricsEngine = Depends(get_engine)):
    return Response(content=format_prometheus(engine), media_type=CONTENT_TYPE_LATEST)


@router.get("/dashboard")
def dashboard(engine: MetricsEngine = Depends(get_engine)):
    return engine.get_dashboard_snapshot()
