"""
Caller-facing notification triggers.

One convenience method per event kind, each a fixed classify + dispatch.
Recipient id, display strings and the optional email are always passed in;
nothing is read from a session.
"""

from typing import Any, Optional, Union

from dispatch.dispatcher import DispatchOutcome, NotificationDispatcher
from marketplace.templates import EventKind, classify


class NotificationTriggers:
    """
    Convenience wrappers over the classify + dispatch pipeline.

    Example:
        triggers = NotificationTriggers(dispatcher)
        outcome = triggers.notify_new_review("user-001", "Bob Chen", "alice@example.com")
    """

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    def notify(
        self,
        event_kind: Union[EventKind, str],
        data: dict[str, Any],
    ) -> DispatchOutcome:
        """
        Classify and dispatch an arbitrary event.

        Raises:
            UnknownEventKind: If event_kind is not supported
            TemplateDataError: If data lacks a required field
        """
        request = classify(event_kind, data)
        return self.dispatcher.dispatch(request)

    def notify_new_message(
        self,
        recipient_id: str,
        sender_name: str,
        recipient_email: Optional[str] = None,
    ) -> DispatchOutcome:
        """Tell a user someone sent them a message."""
        return self.notify(EventKind.NEW_MESSAGE, {
            "recipient_id": recipient_id,
            "sender_name": sender_name,
            "recipient_email": recipient_email,
        })

    def notify_new_booking(
        self,
        owner_id: str,
        listing_title: str,
        owner_email: Optional[str] = None,
    ) -> DispatchOutcome:
        """Tell a listing owner someone requested a viewing."""
        return self.notify(EventKind.NEW_BOOKING_REQUEST, {
            "owner_id": owner_id,
            "listing_title": listing_title,
            "recipient_email": owner_email,
        })

    def notify_listing_approved(
        self,
        user_id: str,
        listing_title: str,
        user_email: Optional[str] = None,
    ) -> DispatchOutcome:
        """Tell a listing owner their listing went live."""
        return self.notify(EventKind.LISTING_APPROVED, {
            "owner_id": user_id,
            "listing_title": listing_title,
            "recipient_email": user_email,
        })

    def notify_new_review(
        self,
        user_id: str,
        reviewer_name: str,
        user_email: Optional[str] = None,
    ) -> DispatchOutcome:
        """Tell a user they received a review."""
        return self.notify(EventKind.NEW_REVIEW, {
            "user_id": user_id,
            "reviewer_name": reviewer_name,
            "recipient_email": user_email,
        })
