"""Estadísticas internas del motor (métricas sobre métricas)."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, fields


@dataclass
class EngineStats:
    """Contadores de operación del motor.

    Los fallos del store nunca llegan al caller de record(); quedan aquí.
    """

    points_recorded: int = 0
    labels_dropped: int = 0
    out_of_order_clamped: int = 0

    mirror_enqueued: int = 0
    mirror_dropped: int = 0
    mirror_written: int = 0
    mirror_failed: int = 0

    rollup_runs: int = 0
    rollup_rows_written: int = 0
    rollup_failures: int = 0

    cleanup_runs: int = 0
    cleanup_points_evicted: int = 0
    cleanup_rows_deleted: int = 0
    cleanup_failures: int = 0

    notifications_dropped: int = 0
    side_effect_errors: int = 0
    worker_errors: int = 0

    started_at: float = field(default_factory=time.time)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def incr(self, name: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)

    def to_dict(self) -> dict:
        with self._lock:
            data = {
                f.name: getattr(self, f.name)
                for f in fields(self)
                if not f.name.startswith("_") and f.name != "started_at"
            }
        data["uptime_seconds"] = round(time.time() - self.started_at, 2)
        return data

    def __str__(self) -> str:
        return (
            f"EngineStats: recorded={self.points_recorded} "
            f"mirror_failed={self.mirror_failed} rollup_failures={self.rollup_failures}"
        )
