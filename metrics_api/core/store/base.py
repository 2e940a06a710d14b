from __future__ import annotations

from typing import List, Protocol


class MetricStore(Protocol):
    """Interfaz del store externo de series temporales.

    El motor solo depende de esta interfaz. Las claves son sorted sets
    puntuados por timestamp en ms; los miembros son payloads JSON.
    Las implementaciones pueden lanzar cualquier excepción de I/O: quien
    llama (mirror writer, rollup, cleanup) la aísla y la cuenta.
    """

    def append(self, key: str, timestamp: int, payload: dict) -> None:
        ...

    def range_query(self, key: str, from_score: int, to_score: int) -> List[dict]:
        """Payloads con score en [from_score, to_score], ordenados por score."""
        ...

    def expire(self, key: str, ttl_seconds: int) -> None:
        ...

    def delete_range(self, key: str, from_score: int, to_score: int) -> int:
        """Borra miembros con score en [from_score, to_score]; devuelve cuántos."""
        ...

    def save_definition(self, hash_key: str, name: str, payload: dict) -> None:
        ...

    def ping(self) -> bool:
        ...

    def close(self) -> None:
        ...
