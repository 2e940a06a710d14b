"""Esquema de claves del store."""

from __future__ import annotations

DEFINITIONS_KEY = "metrics:definitions"


def _prefixed(namespace: str, key: str) -> str:
    return f"{namespace}:{key}" if namespace else key


def definitions_key(namespace: str = "") -> str:
    return _prefixed(namespace, DEFINITIONS_KEY)


def series_key(metric: str, namespace: str = "") -> str:
    return _prefixed(namespace, f"metrics:timeseries:{metric}")


def aggregated_key(metric: str, aggregation: str, window: str, namespace: str = "") -> str:
    return _prefixed(namespace, f"metrics:aggregated:{metric}:{aggregation}:{window}")
