"""Endpoints de escritura y consulta de series."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_engine
from ..engine import MetricsEngine
from ..schemas import (
    AnomaliesOut,
    PercentilesOut,
    PointOut,
    RateOut,
    RecordIn,
    RecordResult,
    SeriesOut,
)

router = APIRouter(prefix="/metrics", tags=["metrics"])


def _point_out(point) -> PointOut:
    return PointOut(timestamp=point.timestamp, value=point.value, labels=dict(point.labels))


@router.post("/{name}/record", response_model=RecordResult)
def record_metric(name: str, payload: RecordIn, engine: MetricsEngine = Depends(get_engine)):
    point = engine.record(name, payload.value, payload.labels, payload.timestamp)
    return RecordResult(metric=name, point=_point_out(point))


@router.get("/{name}/series", response_model=SeriesOut)
def get_series(
    name: str,
    limit: Optional[int] = Query(default=None, ge=1),
    engine: MetricsEngine = Depends(get_engine),
):
    points = engine.get_series(name)
    if limit is not None:
        points = points[-limit:]
    return SeriesOut(metric=name, count=len(points), points=[_point_out(p) for p in points])


@router.get("/{name}/percentiles", response_model=PercentilesOut)
def get_percentiles(
    name: str,
    p: List[float] = Query(default=[50, 95, 99]),
    start: Optional[int] = Query(default=None, ge=0),
    end: Optional[int] = Query(default=None, ge=0),
    engine: MetricsEngine = Depends(get_engine),
):
    if (start is None) != (end is None):
        raise HTTPException(status_code=422, detail="start and end must be given together")
    time_range = (start, end) if start is not None else None
    result = engine.calculate_percentiles(name, p, time_range)
    return PercentilesOut(
        metric=name,
        percentiles={f"p{q:g}": value for q, value in result.items()},
    )


@router.get("/{name}/rate", response_model=RateOut)
def get_rate(
    name: str,
    window_ms: int = Query(default=60_000, ge=1),
    engine: MetricsEngine = Depends(get_engine),
):
    return RateOut(
        metric=name,
        window_ms=window_ms,
        rate_per_second=engine.calculate_rate(name, window_ms),
    )


@router.get("/{name}/anomalies", response_model=AnomaliesOut)
def get_anomalies(
    name: str,
    z_threshold: float = Query(default=2.0, gt=0),
    window_size: int = Query(default=100, ge=1),
    engine: MetricsEngine = Depends(get_engine),
):
    anomalies = engine.detect_anomalies(name, z_threshold, window_size)
    return AnomaliesOut(
        metric=name,
        z_threshold=z_threshold,
        window_size=window_size,
        anomalies=[_point_out(p) for p in anomalies],
    )
