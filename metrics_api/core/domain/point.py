"""Punto de una serie temporal."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, Union

LabelValue = Union[str, int, float]
Labels = Dict[str, LabelValue]


@dataclass(frozen=True)
class MetricPoint:
    """Observación inmutable de una métrica.

    `timestamp` en milisegundos epoch (wall time).
    """

    timestamp: int
    value: float
    labels: Labels = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "value": self.value,
            "labels": dict(self.labels),
        }

    def to_store_data(self) -> str:
        """Serializa a JSON para el sorted set del store."""
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict) -> "MetricPoint":
        return cls(
            timestamp=int(data["timestamp"]),
            value=float(data["value"]),
            labels=dict(data.get("labels") or {}),
        )
