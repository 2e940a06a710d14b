from __future__ import annotations

from fastapi import HTTPException, Request

from .engine import MetricsEngine


def get_engine(request: Request) -> MetricsEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None or engine.closed:
        raise HTTPException(status_code=503, detail="metrics engine not ready")
    return engine
