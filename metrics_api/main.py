from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from common.config import get_settings

from .endpoints import alerts_router, health_router, metrics_router
from .engine import MetricsEngine
from .errors import (
    DuplicateNameError,
    InvalidAlertError,
    InvalidDefinitionError,
    InvalidLabelsError,
    InvalidValueError,
    MetricsError,
    NotFoundError,
)

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


def status_for(exc: MetricsError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, DuplicateNameError):
        return 409
    if isinstance(
        exc, (InvalidDefinitionError, InvalidLabelsError, InvalidValueError, InvalidAlertError)
    ):
        return 422
    return 400


def create_app(engine: Optional[MetricsEngine] = None) -> FastAPI:
    """Crea la app. Con `engine` inyectado (tests) la app no lo cierra."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = engine is None
        app.state.engine = engine if engine is not None else MetricsEngine(settings=get_settings())
        logger.info("[API] Metrics engine ready")
        try:
            yield
        finally:
            if owned:
                app.state.engine.close()

    app = FastAPI(title="Healthcare Metrics Service", version="0.1.0", lifespan=lifespan)
    if engine is not None:
        app.state.engine = engine

    @app.exception_handler(MetricsError)
    async def metrics_error_handler(request: Request, exc: MetricsError):
        status = status_for(exc)
        logger.info("[API] %s %s -> %d: %s", request.method, request.url.path, status, exc)
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(alerts_router)
    return app


app = create_app()
