"""
Notification store adapter.

Records in-app notifications against their recipient and lets the recipient
list them and mark them read.

In production this table lives in the hosted backend; here it is an in-memory
table with the same contract, which keeps the dispatcher testable in
isolation.

Design decisions:
- create_notification takes a NewNotification value object, not loose fields
- Failures surface as StoreWriteFailed; this adapter never retries
- Records are never deleted here (retention is someone else's job)
- A lock guards the table, so concurrent dispatches need no outer lock
- Deduplication is opt-in: only records carrying a dedupe_key are checked
"""

import logging
import threading
from typing import Optional

from marketplace.errors import (
    DuplicateNotification,
    NotificationNotFound,
    StoreWriteFailed,
)
from marketplace.models import NewNotification, Notification

logger = logging.getLogger("notification_store")


class NotificationStore:
    """
    In-memory notification table.

    Example:
        store = NotificationStore()
        record = store.create_notification(NewNotification(
            user_id="user-001",
            title="New Message",
            content="You have a new message from Bob",
            type="message",
            link="/messages",
        ))
        store.mark_read(record.id, "user-001")
    """

    def __init__(self):
        self._notifications: dict[str, Notification] = {}
        self._dedupe_index: set[tuple[str, str, str]] = set()
        self._lock = threading.Lock()

    # =========================================================================
    # Writes
    # =========================================================================

    def create_notification(self, new: NewNotification) -> Notification:
        """
        Insert exactly one notification record.

        Returns:
            The stored Notification with generated id and timestamp

        Raises:
            DuplicateNotification: If new.dedupe_key was already used for
                this recipient and type
            StoreWriteFailed: If the record could not be written
        """
        with self._lock:
            dedupe = None
            if new.dedupe_key is not None:
                dedupe = (new.user_id, new.type, new.dedupe_key)
                if dedupe in self._dedupe_index:
                    raise DuplicateNotification(new.user_id, new.type, new.dedupe_key)

            notification = self._insert(new)

            if dedupe is not None:
                self._dedupe_index.add(dedupe)

        logger.info(
            f"Stored {notification.type} notification {notification.id[:8]} "
            f"for {notification.user_id}"
        )
        return notification

    def _insert(self, new: NewNotification) -> Notification:
        """Write the row. Subclasses backed by a real database override this."""
        try:
            notification = Notification(**new.model_dump())
        except ValueError as e:
            raise StoreWriteFailed(f"Invalid notification row: {e}") from e
        self._notifications[notification.id] = notification
        return notification

    def mark_read(self, notification_id: str, user_id: str) -> Notification:
        """
        Mark one notification read on behalf of its recipient.

        Raises:
            NotificationNotFound: If the id is unknown or owned by another user
        """
        with self._lock:
            notification = self._notifications.get(notification_id)
            if notification is None or notification.user_id != user_id:
                raise NotificationNotFound(
                    f"Notification {notification_id} not found for {user_id}"
                )
            if notification.read:
                return notification
            updated = notification.model_copy(update={"read": True})
            self._notifications[notification_id] = updated
        return updated

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of a user read. Returns how many changed."""
        changed = 0
        with self._lock:
            for notification_id, notification in self._notifications.items():
                if notification.user_id == user_id and not notification.read:
                    self._notifications[notification_id] = notification.model_copy(
                        update={"read": True}
                    )
                    changed += 1
        return changed

    # =========================================================================
    # Reads
    # =========================================================================

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        """Get a notification by ID."""
        return self._notifications.get(notification_id)

    def list_notifications(self, user_id: str, unread_only: bool = False) -> list[Notification]:
        """A user's notifications, newest first."""
        with self._lock:
            rows = [
                n for n in self._notifications.values()
                if n.user_id == user_id and not (unread_only and n.read)
            ]
        # Insertion order is creation order
        rows.reverse()
        return rows

    def unread_count(self, user_id: str) -> int:
        """Number of unread notifications for a user."""
        return len(self.list_notifications(user_id, unread_only=True))

    def count(self) -> int:
        """Total number of stored notifications (for testing)."""
        return len(self._notifications)

    def clear(self) -> None:
        """Drop every record (useful between tests)."""
        with self._lock:
            self._notifications.clear()
            self._dedupe_index.clear()
