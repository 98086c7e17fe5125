"""
Notification templates and the event classifier.

This module maps a domain occurrence (an event kind plus its data) to a
canonical notification: recipient, title, content, type, deep link and
whether an email should go out as well.

Design decisions:
- One template per event kind, keyed by the EventKind enum
- Templates are simple strings with {variable} placeholders
- Unknown event kinds are rejected; there is no fallback template
- The email uses the notification title as its subject
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from pydantic import ValidationError

from marketplace.errors import TemplateDataError, UnknownEventKind
from marketplace.models import DispatchRequest, NotificationType


class EventKind(str, Enum):
    """
    Supported notification triggers.

    Each kind corresponds to a marketplace event that notifies one user.
    """
    NEW_MESSAGE = "new_message"
    NEW_BOOKING_REQUEST = "new_booking_request"
    LISTING_APPROVED = "listing_approved"
    NEW_REVIEW = "new_review"


@dataclass(frozen=True)
class NotificationTemplate:
    """
    A notification template for one event kind.

    recipient_field names the data key that holds the recipient's user id.
    """
    event_kind: EventKind
    recipient_field: str
    title: str
    content: str
    notification_type: NotificationType
    link: str
    require_email: bool = True

    def render_content(self, data: Mapping[str, Any]) -> str:
        """Render the content template, ignoring keys it does not use."""
        try:
            return self.content.format_map(data)
        except KeyError as e:
            raise TemplateDataError(self.event_kind.value, e.args[0]) from e


# =============================================================================
# Template Definitions
# =============================================================================

TEMPLATES: dict[EventKind, NotificationTemplate] = {

    EventKind.NEW_MESSAGE: NotificationTemplate(
        event_kind=EventKind.NEW_MESSAGE,
        recipient_field="recipient_id",
        title="New Message",
        content="You have a new message from {sender_name}",
        notification_type=NotificationType.MESSAGE,
        link="/messages",
    ),

    EventKind.NEW_BOOKING_REQUEST: NotificationTemplate(
        event_kind=EventKind.NEW_BOOKING_REQUEST,
        recipient_field="owner_id",
        title="New Viewing Request",
        content='Someone requested a viewing for "{listing_title}"',
        notification_type=NotificationType.BOOKING,
        link="/appointments",
    ),

    EventKind.LISTING_APPROVED: NotificationTemplate(
        event_kind=EventKind.LISTING_APPROVED,
        recipient_field="owner_id",
        title="Listing Approved",
        content='Your listing "{listing_title}" has been approved and is now live!',
        notification_type=NotificationType.LISTING,
        link="/my-listings",
    ),

    EventKind.NEW_REVIEW: NotificationTemplate(
        event_kind=EventKind.NEW_REVIEW,
        recipient_field="user_id",
        title="New Review",
        content="{reviewer_name} left you a new review",
        notification_type=NotificationType.REVIEW,
        link="/profile",
    ),
}


# =============================================================================
# Classification
# =============================================================================

def get_template(event_kind: Union[EventKind, str]) -> NotificationTemplate:
    """
    Look up the template for an event kind.

    Raises:
        UnknownEventKind: If the kind is not one of EventKind
    """
    try:
        kind = EventKind(event_kind)
    except ValueError:
        raise UnknownEventKind(event_kind) from None
    return TEMPLATES[kind]


def classify(event_kind: Union[EventKind, str], data: dict[str, Any]) -> DispatchRequest:
    """
    Resolve an event to a DispatchRequest.

    Args:
        event_kind: One of EventKind (member or string value)
        data: Recipient id under the template's recipient field, the content
              variables, and optionally recipient_email and dedupe_key

    Returns:
        A DispatchRequest bound with concrete data

    Raises:
        UnknownEventKind: If the kind is not supported
        TemplateDataError: If the recipient or a content variable is missing,
            or a value has the wrong type
    """
    template = get_template(event_kind)
    kind = template.event_kind.value

    recipient_id = data.get(template.recipient_field)
    if not recipient_id:
        raise TemplateDataError(kind, template.recipient_field)

    content = template.render_content(data)
    try:
        return DispatchRequest(
            event_kind=kind,
            recipient_id=recipient_id,
            title=template.title,
            content=content,
            notification_type=template.notification_type,
            link=template.link,
            recipient_email=data.get("recipient_email") or None,
            require_email=template.require_email,
            dedupe_key=data.get("dedupe_key"),
        )
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"])
        if field == "recipient_id":
            field = template.recipient_field
        raise TemplateDataError(kind, field, reason=error["msg"]) from e
