"""Reloj en milisegundos inyectable (tests deterministas)."""

from __future__ import annotations

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Wall time actual en milisegundos epoch."""
    return int(time.time() * 1000)
