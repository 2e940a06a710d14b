from __future__ import annotations

import bisect
import json
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple


class InMemoryMetricStore:
    """Implementación en memoria del MetricStore.

    - Sorted sets como listas ordenadas de (score, payload JSON).
    - TTL perezoso: una clave expirada se purga al siguiente acceso.
    - Pensado para tests y para correr sin Redis (METRICS_STORE=memory).
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._sets: Dict[str, List[Tuple[int, str]]] = {}
        self._expiry: Dict[str, float] = {}
        self._hashes: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()

    def _purge_if_expired(self, key: str) -> None:
        deadline = self._expiry.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._sets.pop(key, None)
            self._expiry.pop(key, None)

    def append(self, key: str, timestamp: int, payload: dict) -> None:
        member = json.dumps(payload, sort_keys=True)
        with self._lock:
            self._purge_if_expired(key)
            entries = self._sets.setdefault(key, [])
            item = (int(timestamp), member)
            # Sorted-set semantics: same member at same score is stored once.
            idx = bisect.bisect_left(entries, item)
            if idx < len(entries) and entries[idx] == item:
                return
            entries.insert(idx, item)

    def range_query(self, key: str, from_score: int, to_score: int) -> List[dict]:
        with self._lock:
            self._purge_if_expired(key)
            entries = list(self._sets.get(key, ()))
        return [json.loads(m) for s, m in entries if from_score <= s <= to_score]

    def expire(self, key: str, ttl_seconds: int) -> None:
        with self._lock:
            if key in self._sets:
                self._expiry[key] = self._clock() + ttl_seconds

    def delete_range(self, key: str, from_score: int, to_score: int) -> int:
        with self._lock:
            self._purge_if_expired(key)
            entries = self._sets.get(key)
            if not entries:
                return 0
            kept = [e for e in entries if not from_score <= e[0] <= to_score]
            removed = len(entries) - len(kept)
            if kept:
                self._sets[key] = kept
            else:
                self._sets.pop(key, None)
                self._expiry.pop(key, None)
            return removed

    def save_definition(self, hash_key: str, name: str, payload: dict) -> None:
        with self._lock:
            self._hashes.setdefault(hash_key, {})[name] = json.dumps(payload, sort_keys=True)

    def get_definition(self, hash_key: str, name: str) -> Optional[dict]:
        with self._lock:
            raw = self._hashes.get(hash_key, {}).get(name)
        return json.loads(raw) if raw is not None else None

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._sets)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        pass
