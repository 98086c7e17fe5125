"""
Email dispatch channels.

The marketplace sends transactional emails through an external
"send-notification-email" function. This module wraps that capability:
- EmailChannel: mock channel that logs and records sends, for tests and demos
- FunctionEmailChannel: posts the message to the hosted email function

Design decisions:
- send_email never raises for a delivery problem; it returns an EmailResult
  with success=False
- Sends are logged on the "notifications" logger, bodies only at DEBUG
- The HTTP channel enforces its own timeout so a slow mail service cannot
  stall the caller
- Channel failures can be simulated for testing
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import httpx

from marketplace.config import Settings
from marketplace.errors import EmailSendFailed

logger = logging.getLogger("notifications")


@dataclass
class EmailResult:
    """
    Result of an email send attempt.

    Captures success/failure and metadata for debugging and testing.
    """
    success: bool
    recipient: str
    subject: str
    title: str
    body: str
    link: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"{status} EMAIL to {self.recipient}: {self.subject}"


class EmailChannel:
    """
    Mock email channel.

    Logs email sends and tracks them for test assertions.
    Can simulate failures for testing error handling.
    """

    def __init__(self, fail_rate: float = 0.0):
        """
        Initialize the email channel.

        Args:
            fail_rate: Probability of send failure (0.0 to 1.0), for testing.
        """
        self.fail_rate = fail_rate
        self.sent_messages: list[EmailResult] = []

    def send_email(
        self,
        to: str,
        subject: str,
        title: str,
        body: str,
        link: Optional[str] = None,
    ) -> EmailResult:
        """
        Send an email (mock implementation).

        Args:
            to: Recipient email address
            subject: Email subject line
            title: Heading shown inside the email
            body: Email body content
            link: Optional absolute link for the call-to-action button

        Returns:
            EmailResult indicating success/failure
        """
        result = EmailResult(
            success=True,
            recipient=to,
            subject=subject,
            title=title,
            body=body,
            link=link,
        )

        # Simulate potential failure
        if self.fail_rate and random.random() < self.fail_rate:
            result.success = False
            result.error = "Simulated email delivery failure"
            logger.error(f"[EMAIL FAILED] To: {to} | Subject: {subject} | Error: {result.error}")
        else:
            logger.info(f"[EMAIL] To: {to} | Subject: {subject}")
            logger.debug(f"[EMAIL BODY] {body}")

        self.sent_messages.append(result)
        return result

    def get_sent_count(self) -> int:
        """Get the number of send attempts (for testing)."""
        return len(self.sent_messages)

    def get_successful_sends(self) -> list[EmailResult]:
        """Get all successful sends."""
        return [m for m in self.sent_messages if m.success]

    def clear_history(self):
        """Clear sent message history (useful between tests)."""
        self.sent_messages.clear()

    def find_message_to(self, recipient: str) -> Optional[EmailResult]:
        """Find a message sent to a specific recipient."""
        for msg in self.sent_messages:
            if msg.recipient == recipient:
                return msg
        return None


class FunctionEmailChannel:
    """
    Email channel backed by the hosted send-notification-email function.

    The function accepts {to, subject, title, content, link} as JSON and
    answers 2xx once the message has been submitted for delivery.
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _post(self, payload: dict) -> None:
        try:
            response = self._client.post(
                self.url, json=payload, headers=self._headers(), timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EmailSendFailed(
                f"Email function returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise EmailSendFailed(f"Email function unreachable: {e}") from e

    def send_email(
        self,
        to: str,
        subject: str,
        title: str,
        body: str,
        link: Optional[str] = None,
    ) -> EmailResult:
        """Submit an email through the hosted function."""
        result = EmailResult(
            success=True,
            recipient=to,
            subject=subject,
            title=title,
            body=body,
            link=link,
        )
        try:
            self._post({
                "to": to,
                "subject": subject,
                "title": title,
                "content": body,
                "link": link,
            })
            logger.info(f"[EMAIL] To: {to} | Subject: {subject}")
        except EmailSendFailed as e:
            result.success = False
            result.error = str(e)
            logger.error(f"[EMAIL FAILED] To: {to} | Subject: {subject} | Error: {e}")
        return result

    def close(self) -> None:
        self._client.close()


def build_email_channel(settings: Settings):
    """
    Create the email channel selected by configuration.

    Raises:
        ValueError: If the function backend is selected without a URL
    """
    if settings.email_backend == "function":
        if not settings.email_function_url:
            raise ValueError("ROOMS_EMAIL_FUNCTION_URL is required for the function email backend")
        return FunctionEmailChannel(
            url=settings.email_function_url,
            api_key=settings.email_api_key,
            timeout=settings.email_timeout_seconds,
        )
    return EmailChannel(fail_rate=settings.email_fail_rate)
