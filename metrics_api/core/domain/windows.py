"""Ventanas de agregación ("1m", "5m", "1h", "24h", "7d")."""

from __future__ import annotations

import re
from typing import Iterable, Tuple

DEFAULT_WINDOWS: Tuple[str, ...] = ("1m", "5m", "15m", "1h", "24h")

_WINDOW_RE = re.compile(r"^(\d+)(ms|s|m|h|d)$")

_UNIT_MS = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}


def parse_window(window: str) -> int:
    """Convierte una ventana a milisegundos.

    Raises:
        ValueError: formato desconocido o duración cero
    """
    match = _WINDOW_RE.match(window.strip())
    if not match:
        raise ValueError(f"Invalid aggregation window {window!r}")
    amount, unit = match.groups()
    ms = int(amount) * _UNIT_MS[unit]
    if ms <= 0:
        raise ValueError(f"Aggregation window {window!r} must be positive")
    return ms


def parse_windows(windows: Iterable[str]) -> Tuple[Tuple[str, int], ...]:
    """Valida un conjunto de ventanas y devuelve pares (label, ms)."""
    return tuple((w.strip(), parse_window(w)) for w in windows)
