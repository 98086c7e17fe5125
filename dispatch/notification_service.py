"""
Event-driven notification service.

Subscribes to marketplace domain events and runs classify + dispatch for each
one. Publishing services (messaging, appointments, admin, reviews) just emit
facts and never learn whether a notification went out.

Design decisions:
- One handler per event type, each mapping the payload onto an event kind
- The event id is used as the dedupe key, so replaying the same event does
  not create a second notification
- The most recent outcomes are kept so a caller can retry emails that did
  not go out
- Handler failures never propagate to the publisher (the bus isolates them)
"""

import logging
import threading
from collections import deque
from typing import Any, Optional

from dispatch.dispatcher import DispatchOutcome, NotificationDispatcher
from dispatch.event_bus import Event, EventBus, get_event_bus
from dispatch.events import EventTypes
from marketplace.errors import ErrorKind
from marketplace.templates import EventKind, classify

logger = logging.getLogger("notification_service")


class NotificationService:
    """
    Bus subscriber that turns domain events into notifications.

    Example:
        service = NotificationService(dispatcher, event_bus=bus)
        service.start()
        bus.publish(review_posted(...))   # stores + emails
        service.failed_email_outcomes()   # candidates for an email retry
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        event_bus: Optional[EventBus] = None,
        history_size: int = 1000,
    ):
        self.dispatcher = dispatcher
        self.event_bus = event_bus or get_event_bus()
        self._outcomes: deque[tuple[Event, DispatchOutcome]] = deque(maxlen=history_size)
        self._outcomes_lock = threading.Lock()
        self._started = False

        self._handlers = {
            EventTypes.MESSAGE_SENT: self._handle_message_sent,
            EventTypes.VIEWING_REQUESTED: self._handle_viewing_requested,
            EventTypes.LISTING_APPROVED: self._handle_listing_approved,
            EventTypes.REVIEW_POSTED: self._handle_review_posted,
        }

    def start(self) -> None:
        """Subscribe to every event type this service handles."""
        if self._started:
            logger.warning("NotificationService already started")
            return

        for event_type, handler in self._handlers.items():
            self.event_bus.subscribe(event_type, handler)

        self._started = True
        logger.info("NotificationService started - subscribed to events")

    def stop(self) -> None:
        """Unsubscribe from all events."""
        if not self._started:
            return

        for event_type, handler in self._handlers.items():
            self.event_bus.unsubscribe(event_type, handler)

        self._started = False
        logger.info("NotificationService stopped")

    # =========================================================================
    # Event Handlers
    # =========================================================================

    def _handle_message_sent(self, event: Event) -> None:
        payload = event.payload
        self._dispatch(event, EventKind.NEW_MESSAGE, {
            "recipient_id": payload["recipient_id"],
            "sender_name": payload["sender_name"],
            "recipient_email": payload.get("recipient_email"),
        })

    def _handle_viewing_requested(self, event: Event) -> None:
        payload = event.payload
        self._dispatch(event, EventKind.NEW_BOOKING_REQUEST, {
            "owner_id": payload["owner_id"],
            "listing_title": payload["listing_title"],
            "recipient_email": payload.get("owner_email"),
        })

    def _handle_listing_approved(self, event: Event) -> None:
        payload = event.payload
        self._dispatch(event, EventKind.LISTING_APPROVED, {
            "owner_id": payload["owner_id"],
            "listing_title": payload["listing_title"],
            "recipient_email": payload.get("owner_email"),
        })

    def _handle_review_posted(self, event: Event) -> None:
        payload = event.payload
        self._dispatch(event, EventKind.NEW_REVIEW, {
            "user_id": payload["reviewed_id"],
            "reviewer_name": payload["reviewer_name"],
            "recipient_email": payload.get("reviewed_email"),
        })

    def _dispatch(self, event: Event, kind: EventKind, data: dict[str, Any]) -> DispatchOutcome:
        logger.info(f"Handling {event.event_type} as {kind.value}")
        request = classify(kind, {**data, "dedupe_key": event.event_id})
        outcome = self.dispatcher.dispatch(request)
        with self._outcomes_lock:
            self._outcomes.append((event, outcome))
        return outcome

    # =========================================================================
    # Outcome history
    # =========================================================================

    def get_outcomes(self) -> list[tuple[Event, DispatchOutcome]]:
        with self._outcomes_lock:
            return list(self._outcomes)

    def failed_email_outcomes(self) -> list[tuple[Event, DispatchOutcome]]:
        """Dispatches whose notification stands but whose email did not go out."""
        return [
            (event, outcome) for event, outcome in self.get_outcomes()
            if outcome.error == ErrorKind.EMAIL_SEND_FAILED
        ]

    def clear_outcomes(self) -> None:
        with self._outcomes_lock:
            self._outcomes.clear()
