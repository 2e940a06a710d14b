from .detector import AnomalyDetector, WindowStats

__all__ = ["AnomalyDetector", "WindowStats"]
