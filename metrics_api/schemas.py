from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RecordIn(BaseModel):
    value: float
    # Validated against the metric's label_names by the engine.
    labels: Dict[str, Any] = Field(default_factory=dict)
    # Epoch milliseconds; defaults to server time.
    timestamp: Optional[int] = Field(default=None, ge=0)


class PointOut(BaseModel):
    timestamp: int
    value: float
    labels: Dict[str, Any] = Field(default_factory=dict)


class RecordResult(BaseModel):
    metric: str
    point: PointOut


class SeriesOut(BaseModel):
    metric: str
    count: int
    points: List[PointOut] = Field(default_factory=list)


class PercentilesOut(BaseModel):
    metric: str
    percentiles: Dict[str, float] = Field(default_factory=dict)


class RateOut(BaseModel):
    metric: str
    window_ms: int
    rate_per_second: float


class AnomaliesOut(BaseModel):
    metric: str
    z_threshold: float
    window_size: int
    anomalies: List[PointOut] = Field(default_factory=list)


class AlertIn(BaseModel):
    metric: str = Field(..., min_length=1)
    condition: str
    threshold: float
    severity: str = "warning"
    healthcare_impact: Optional[str] = None


class AlertOut(BaseModel):
    id: str
    metric: str
    condition: str
    threshold: float
    severity: str
    healthcare_impact: Optional[str] = None
    is_active: bool
    triggered_at: Optional[int] = None
    acknowledged_at: Optional[int] = None
    source: str


class AlertCreated(BaseModel):
    id: str


class AcknowledgeResult(BaseModel):
    id: str
    acknowledged: bool


class KPIThresholdOut(BaseModel):
    warning: float
    critical: float


class KPIOut(BaseModel):
    name: str
    value: float
    target: float
    threshold: KPIThresholdOut
    trend: str
    last_updated: int
    category: str
    compliance_impact: str
    polarity: str
