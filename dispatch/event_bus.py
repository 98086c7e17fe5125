"""
In-memory domain event bus.

Marketplace actions (a message sent, a viewing requested, a listing approved,
a review posted) are published here as facts; the notification service
subscribes and turns them into notifications. In production this would be a
database trigger or a message queue.

Design decisions:
- Synchronous delivery in the publisher's thread
- Type-based subscriptions, delivered in registration order
- A failing handler is logged and never stops the other handlers, so a
  broken notification path cannot fail the action that published the event
- Subscriber lists are copied under a lock, so publishers on different
  threads need no outer lock
- A bounded history of recent events is kept for debugging and tests
"""

import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

logger = logging.getLogger("event_bus")

ALL_EVENTS = "*"


@dataclass(frozen=True)
class Event:
    """
    An immutable record of something that happened in the marketplace.

    Attributes:
        event_type: Name of the event type (used for routing)
        payload: Everything a subscriber needs, so it never queries back
        source: Which component published the event
        event_id: Unique identifier for this event instance
        timestamp: When the event occurred
    """
    event_type: str
    payload: dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return f"Event({self.event_type}, id={self.event_id[:8]}, source={self.source})"


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Simple in-memory pub/sub.

    Example usage:
        bus = EventBus()
        bus.subscribe("ReviewPosted", handle_review)
        bus.publish(review_posted(...))
    """

    def __init__(self, history_size: int = 1000):
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._history: deque[Event] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Call handler for every published event of event_type."""
        with self._lock:
            self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to '{event_type}' events")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Call handler for every published event (audit, debugging)."""
        self.subscribe(ALL_EVENTS, handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """
        Remove a handler.

        Returns:
            True if the handler was found and removed, False otherwise
        """
        with self._lock:
            try:
                self._subscribers[event_type].remove(handler)
            except ValueError:
                return False
        logger.debug(f"Unsubscribed handler from '{event_type}' events")
        return True

    def publish(self, event: Event) -> int:
        """
        Deliver an event to its subscribers.

        Returns:
            Number of handlers that were called
        """
        with self._lock:
            self._history.append(event)
            handlers = (
                list(self._subscribers.get(event.event_type, ()))
                + list(self._subscribers.get(ALL_EVENTS, ()))
            )

        logger.info(f"Publishing: {event}")

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Handler raised exception for {event}")

        if not handlers:
            logger.warning(f"No handlers for event type '{event.event_type}'")

        return len(handlers)

    def get_subscriber_count(self, event_type: str) -> int:
        return len(self._subscribers.get(event_type, ()))

    def get_event_log(self) -> list[Event]:
        """Recent published events, oldest first."""
        with self._lock:
            return list(self._history)

    def clear_event_log(self) -> None:
        with self._lock:
            self._history.clear()

    def clear_subscribers(self) -> None:
        """Remove all subscribers (useful for testing)."""
        with self._lock:
            self._subscribers.clear()


# Module-level singleton for convenience
_default_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the default event bus singleton."""
    global _default_bus
    if _default_bus is None:
        _default_bus = EventBus()
    return _default_bus


def reset_event_bus() -> EventBus:
    """Reset the default event bus (useful for testing)."""
    global _default_bus
    _default_bus = EventBus()
    return _default_bus
