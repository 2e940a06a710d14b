"""Series layer - Buffers en memoria y mirror al store."""

from .time_series import DEFAULT_MAX_POINTS, TimeSeries
from .mirror import MirrorWrite, MirrorWriter
from .buffer import TimeSeriesBuffer

__all__ = [
    "DEFAULT_MAX_POINTS",
    "TimeSeries",
    "MirrorWrite",
    "MirrorWriter",
    "TimeSeriesBuffer",
]
