from .bus import Event, EventType, NotificationBus, Subscription

__all__ = ["Event", "EventType", "NotificationBus", "Subscription"]
