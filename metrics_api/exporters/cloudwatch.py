from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from ..engine import MetricsEngine

DEFAULT_UNIT = "Count"


def format_cloudwatch(engine: "MetricsEngine") -> List[dict]:
    """MetricData para PutMetricData: último punto de cada métrica con datos."""
    metric_data = []
    for definition in engine.list_definitions():
        latest = engine.latest_point(definition.name)
        if latest is None:
            continue
        metric_data.append({
            "MetricName": definition.name,
            "Value": latest.value,
            "Unit": definition.unit or DEFAULT_UNIT,
            "Timestamp": datetime.fromtimestamp(latest.timestamp / 1000, tz=timezone.utc),
            "Dimensions": [
                {"Name": k, "Value": str(v)} for k, v in latest.labels.items()
            ],
        })
    return metric_data
