"""
Domain events that trigger notifications.

Each helper builds an Event carrying everything the notification service
needs, including the recipient's email when the publisher knows it, so the
subscriber never reaches into session state or queries back.

Events are named in past tense: they are facts, not commands.
"""

from typing import Optional

from dispatch.event_bus import Event


class EventTypes:
    """Constants for event type names."""
    MESSAGE_SENT = "MessageSent"
    VIEWING_REQUESTED = "ViewingRequested"
    LISTING_APPROVED = "ListingApproved"
    REVIEW_POSTED = "ReviewPosted"


def message_sent(
    recipient_id: str,
    sender_name: str,
    recipient_email: Optional[str] = None,
    message_id: Optional[str] = None,
    source: str = "messaging",
) -> Event:
    """Published when one user sends another a message."""
    return Event(
        event_type=EventTypes.MESSAGE_SENT,
        source=source,
        payload={
            "recipient_id": recipient_id,
            "sender_name": sender_name,
            "recipient_email": recipient_email,
            "message_id": message_id,
        },
    )


def viewing_requested(
    owner_id: str,
    listing_id: str,
    listing_title: str,
    owner_email: Optional[str] = None,
    source: str = "appointments",
) -> Event:
    """Published when a tenant requests a viewing of a listing."""
    return Event(
        event_type=EventTypes.VIEWING_REQUESTED,
        source=source,
        payload={
            "owner_id": owner_id,
            "listing_id": listing_id,
            "listing_title": listing_title,
            "owner_email": owner_email,
        },
    )


def listing_approved(
    owner_id: str,
    listing_id: str,
    listing_title: str,
    owner_email: Optional[str] = None,
    admin_id: Optional[str] = None,
    source: str = "admin",
) -> Event:
    """Published when an administrator approves a listing."""
    return Event(
        event_type=EventTypes.LISTING_APPROVED,
        source=source,
        payload={
            "owner_id": owner_id,
            "listing_id": listing_id,
            "listing_title": listing_title,
            "owner_email": owner_email,
            "admin_id": admin_id,
        },
    )


def review_posted(
    reviewed_id: str,
    review_id: str,
    reviewer_name: str,
    reviewed_email: Optional[str] = None,
    source: str = "reviews",
) -> Event:
    """Published when a review about a user becomes visible."""
    return Event(
        event_type=EventTypes.REVIEW_POSTED,
        source=source,
        payload={
            "reviewed_id": reviewed_id,
            "review_id": review_id,
            "reviewer_name": reviewer_name,
            "reviewed_email": reviewed_email,
        },
    )
