"""Excepciones del motor de métricas.

Los errores de definición y de métrica no registrada se propagan al caller.
Los errores de I/O contra el store nunca salen de aquí: se loguean y cuentan
en EngineStats.
"""

from __future__ import annotations


class MetricsError(Exception):
    """Base de todas las excepciones del motor."""


class InvalidDefinitionError(MetricsError):
    """Definición con forma inválida (nombre vacío, buckets, objetivos...)."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid definition for metric '{name}': {reason}")


class DuplicateNameError(MetricsError):
    """Re-registro de un nombre existente con kind o labels distintos."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Metric '{name}' already registered: {reason}")


class NotFoundError(MetricsError):
    """Entidad inexistente."""


class NotRegisteredError(NotFoundError):
    """Métrica no registrada (record/lookup sobre un nombre desconocido)."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Metric '{name}' not registered")


class AlertNotFoundError(NotFoundError):
    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert '{alert_id}' not found")


class InvalidLabelsError(MetricsError):
    """Valor de label que no es str/int/float."""

    def __init__(self, name: str, key: str, value: object):
        self.name = name
        self.key = key
        super().__init__(
            f"Invalid label {key}={value!r} for metric '{name}': "
            "values must be str, int or float"
        )


class InvalidValueError(MetricsError):
    def __init__(self, name: str, value: object, reason: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid value {value!r} for metric '{name}': {reason}")


class InvalidAlertError(MetricsError):
    """Regla de alerta con condición o severidad desconocida."""
