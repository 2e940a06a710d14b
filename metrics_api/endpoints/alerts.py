"""Reglas de alerta y KPIs."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.domain import HealthcareCategory
from ..dependencies import get_engine
from ..engine import MetricsEngine
from ..schemas import AcknowledgeResult, AlertCreated, AlertIn, AlertOut, KPIOut

router = APIRouter(tags=["alerts"])


@router.get("/alerts", response_model=List[AlertOut])
def list_alerts(
    active_only: bool = Query(default=False),
    metric: Optional[str] = Query(default=None),
    engine: MetricsEngine = Depends(get_engine),
):
    alerts = engine.get_active_alerts() if active_only else engine.list_alerts(metric)
    if active_only and metric:
        alerts = [a for a in alerts if a.metric == metric]
    return [AlertOut(**a.to_dict()) for a in alerts]


@router.post("/alerts", response_model=AlertCreated, status_code=201)
def create_alert(payload: AlertIn, engine: MetricsEngine = Depends(get_engine)):
    alert_id = engine.add_alert(
        payload.metric,
        payload.condition,
        payload.threshold,
        payload.severity,
        payload.healthcare_impact,
    )
    return AlertCreated(id=alert_id)


@router.post("/alerts/{alert_id}/acknowledge", response_model=AcknowledgeResult)
def acknowledge_alert(alert_id: str, engine: MetricsEngine = Depends(get_engine)):
    return AcknowledgeResult(id=alert_id, acknowledged=engine.acknowledge_alert(alert_id))


@router.get("/kpis", response_model=List[KPIOut])
def list_kpis(
    category: Optional[str] = Query(default=None),
    engine: MetricsEngine = Depends(get_engine),
):
    if category is None:
        kpis = engine.get_kpis()
    else:
        try:
            kpis = engine.get_kpis_by_category(HealthcareCategory(category))
        except ValueError:
            raise HTTPException(status_code=422, detail=f"unknown category {category!r}")
    return [KPIOut(**k.to_dict()) for k in kpis]
