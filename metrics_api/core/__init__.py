"""Core del motor de métricas.

Capas:
- domain: Definiciones, puntos y ventanas
- store: Interfaz del store externo + implementación en memoria
- redis: Implementación Redis del store
- resilience: Circuit breaker del mirror
- monitoring: Estadísticas y health checks
"""
