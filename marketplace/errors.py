"""
Error types for the approval workflow and notification dispatch.

Design decisions:
- Programmer errors (unknown event kind, bad template data, forbidden
  transitions) subclass ValueError so they read like the built-in misuse errors
- Store failures have their own hierarchy; the dispatcher turns them into an
  outcome instead of letting them escape into unrelated call sites
- Email failures are never raised through dispatch, see ErrorKind
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Error categories reported in a DispatchOutcome."""
    STORE_WRITE_FAILED = "store_write_failed"
    DUPLICATE = "duplicate"
    EMAIL_SEND_FAILED = "email_send_failed"


class MarketplaceError(Exception):
    """Base class for all errors raised by this package."""


class UnknownEventKind(MarketplaceError, ValueError):
    """The classifier was given an event kind it has no template for."""

    def __init__(self, event_kind):
        self.event_kind = event_kind
        super().__init__(f"Unknown event kind: {event_kind!r}")


class TemplateDataError(MarketplaceError, ValueError):
    """Template data is missing a field the event kind requires, or holds a bad value."""

    def __init__(self, event_kind: str, missing: str, reason: Optional[str] = None):
        self.event_kind = event_kind
        self.missing = missing
        self.reason = reason
        if reason:
            message = f"Invalid '{missing}' for event kind '{event_kind}': {reason}"
        else:
            message = f"Missing '{missing}' for event kind '{event_kind}'"
        super().__init__(message)


class InvalidTransition(MarketplaceError, ValueError):
    """An approval state change that the workflow does not permit."""

    def __init__(self, entity_type: str, entity_id: str, current: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current = current
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in state '{current}'"
        )


class StoreWriteFailed(MarketplaceError):
    """The notification store could not persist a record."""


class DuplicateNotification(StoreWriteFailed):
    """A notification with the same (user, type, dedupe key) already exists."""

    def __init__(self, user_id: str, notification_type: str, dedupe_key: str):
        self.user_id = user_id
        self.notification_type = notification_type
        self.dedupe_key = dedupe_key
        super().__init__(
            f"Duplicate {notification_type} notification for {user_id} "
            f"(dedupe_key={dedupe_key})"
        )


class NotificationNotFound(MarketplaceError):
    """No notification with that id is owned by the given user."""


class EmailSendFailed(MarketplaceError):
    """An email channel could not submit a message."""
