"""
Dispatch orchestrator.

Turns a classified DispatchRequest into its two side effects:
1. an in-app notification in the notification store
2. optionally, an email through the email channel

Design decisions:
- Store first, email second, never the reverse. A user must never receive an
  email with no in-app trace.
- No transaction spans the two: they live in different systems. The stored
  notification alone counts as delivered; email is best-effort.
- An email failure is a partial success reported in the outcome, not an
  exception, and the notification is never rolled back.
- Each dispatch persists once and emails at most once. Retry belongs to the
  caller, using email_sent=False as the signal.
- No deduplication here. Callers that replay events pass a dedupe_key and
  the store rejects the second insert.
"""

import logging
from typing import Optional, Protocol

from pydantic import BaseModel

from marketplace.channels import EmailResult
from marketplace.errors import DuplicateNotification, ErrorKind, StoreWriteFailed
from marketplace.models import DispatchRequest, Notification
from marketplace.notification_store import NotificationStore

logger = logging.getLogger("dispatcher")


class EmailSender(Protocol):
    """Anything that can submit an email, e.g. marketplace.channels.EmailChannel."""

    def send_email(
        self,
        to: str,
        subject: str,
        title: str,
        body: str,
        link: Optional[str] = None,
    ) -> EmailResult:
        ...


class DispatchOutcome(BaseModel):
    """
    What happened to one dispatch.

    notification_created=False means nothing was delivered and no email was
    attempted. notification_created=True with error=email_send_failed is a
    partial success.
    """
    notification_created: bool
    email_sent: bool = False
    error: Optional[ErrorKind] = None
    error_detail: Optional[str] = None
    notification: Optional[Notification] = None

    @property
    def delivered(self) -> bool:
        """The in-app notification exists."""
        return self.notification_created

    @property
    def partial(self) -> bool:
        """Stored, but the email that should have gone out did not."""
        return self.notification_created and self.error == ErrorKind.EMAIL_SEND_FAILED


class NotificationDispatcher:
    """
    Persist-then-email orchestrator.

    Example:
        dispatcher = NotificationDispatcher(store, email_channel)
        request = classify("new_review", {
            "user_id": "user-001",
            "reviewer_name": "Bob",
            "recipient_email": "alice@example.com",
        })
        outcome = dispatcher.dispatch(request)
        if outcome.delivered and not outcome.email_sent:
            ...  # caller may queue an email retry
    """

    def __init__(
        self,
        store: NotificationStore,
        email: EmailSender,
        site_url: Optional[str] = None,
    ):
        """
        Args:
            store: Where notifications are recorded
            email: Channel used when a request requires email
            site_url: Origin prepended to in-app links in emails
        """
        self.store = store
        self.email = email
        self.site_url = (site_url or "").rstrip("/")

    def _absolute_link(self, link: Optional[str]) -> Optional[str]:
        if not link:
            return None
        if link.startswith(("http://", "https://")) or not self.site_url:
            return link
        return f"{self.site_url}{link}"

    def dispatch(self, request: DispatchRequest) -> DispatchOutcome:
        """
        Deliver one classified event.

        Never raises for store or email failures; inspect the outcome.
        """
        # Step 1: persist. Email is never attempted without a stored record.
        try:
            notification = self.store.create_notification(request.to_new_notification())
        except DuplicateNotification as e:
            logger.info(f"Skipping duplicate {request.event_kind} for {request.recipient_id}: {e}")
            return DispatchOutcome(
                notification_created=False,
                error=ErrorKind.DUPLICATE,
                error_detail=str(e),
            )
        except StoreWriteFailed as e:
            logger.error(
                f"Failed to store {request.event_kind} notification "
                f"for {request.recipient_id}: {e}"
            )
            return DispatchOutcome(
                notification_created=False,
                error=ErrorKind.STORE_WRITE_FAILED,
                error_detail=str(e),
            )

        # Step 2: stop here when no email is wanted or possible
        if not request.require_email or not request.recipient_email:
            if request.require_email:
                logger.debug(f"No email address for {request.recipient_id}, in-app only")
            return DispatchOutcome(notification_created=True, notification=notification)

        # Step 3: best-effort email, attempted once
        try:
            result = self.email.send_email(
                to=request.recipient_email,
                subject=request.title,
                title=request.title,
                body=request.content,
                link=self._absolute_link(request.link),
            )
            email_sent = result.success
            detail = result.error
        except Exception as e:
            email_sent = False
            detail = str(e)

        if not email_sent:
            logger.warning(
                f"Notification {notification.id[:8]} stored but email to "
                f"{request.recipient_email} failed: {detail}"
            )
            return DispatchOutcome(
                notification_created=True,
                email_sent=False,
                error=ErrorKind.EMAIL_SEND_FAILED,
                error_detail=detail,
                notification=notification,
            )

        logger.info(f"Dispatched {request.event_kind} to {request.recipient_id} (in-app + email)")
        return DispatchOutcome(
            notification_created=True,
            email_sent=True,
            notification=notification,
        )
