"""
Notification dispatch engine.

- NotificationDispatcher: persist the in-app notification, then best-effort email
- NotificationTriggers: notify_* convenience wrappers for callers
- EventBus / NotificationService: event-driven path, where marketplace actions
  publish facts and the service dispatches on their behalf
"""

from dispatch.dispatcher import DispatchOutcome, NotificationDispatcher
from dispatch.triggers import NotificationTriggers
from dispatch.event_bus import Event, EventBus, get_event_bus, reset_event_bus
from dispatch.notification_service import NotificationService

__all__ = [
    "DispatchOutcome",
    "NotificationDispatcher",
    "NotificationTriggers",
    "Event",
    "EventBus",
    "get_event_bus",
    "reset_event_bus",
    "NotificationService",
]
