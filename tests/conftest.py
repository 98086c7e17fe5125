"""
Shared pytest fixtures for the marketplace notification tests.

These fixtures provide consistent test data and fresh state for every test.
"""

import pytest
from pathlib import Path

from dispatch.dispatcher import NotificationDispatcher
from dispatch.event_bus import EventBus
from dispatch.triggers import NotificationTriggers
from marketplace.channels import EmailChannel
from marketplace.data_store import DataStore
from marketplace.errors import StoreWriteFailed
from marketplace.notification_store import NotificationStore

SITE_URL = "https://rooms.example.com"


class UnavailableNotificationStore(NotificationStore):
    """A notification store whose backend is down."""

    def __init__(self):
        super().__init__()
        self.attempts = 0

    def _insert(self, new):
        self.attempts += 1
        raise StoreWriteFailed("connection refused")


@pytest.fixture
def data_dir() -> Path:
    """Path to the fixture data directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def data_store(data_dir: Path) -> DataStore:
    """
    Fresh DataStore instance for each test.

    Uses the real JSON fixtures but creates a new instance
    so tests don't interfere with each other.
    """
    return DataStore(data_dir=data_dir)


@pytest.fixture
def notification_store() -> NotificationStore:
    return NotificationStore()


@pytest.fixture
def failing_store() -> UnavailableNotificationStore:
    return UnavailableNotificationStore()


@pytest.fixture
def email_channel() -> EmailChannel:
    """Fresh EmailChannel for each test."""
    return EmailChannel(fail_rate=0.0)


@pytest.fixture
def failing_email_channel() -> EmailChannel:
    """EmailChannel that fails every send."""
    return EmailChannel(fail_rate=1.0)


@pytest.fixture
def dispatcher(notification_store, email_channel) -> NotificationDispatcher:
    return NotificationDispatcher(notification_store, email_channel, site_url=SITE_URL)


@pytest.fixture
def triggers(dispatcher) -> NotificationTriggers:
    return NotificationTriggers(dispatcher)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


# =============================================================================
# Fixture ids
# =============================================================================

@pytest.fixture
def alice_id() -> str:
    """Alice: owns lst-001 (live) and lst-002 (pending), has an email."""
    return "user-001"


@pytest.fixture
def bob_id() -> str:
    """Bob: tenant, writes reviews, has an email."""
    return "user-002"


@pytest.fixture
def carla_id() -> str:
    """Carla: owns lst-003 (deactivated) and lst-004 (unverified), no email."""
    return "user-003"


@pytest.fixture
def live_listing_id() -> str:
    return "lst-001"


@pytest.fixture
def pending_listing_id() -> str:
    return "lst-002"


@pytest.fixture
def deactivated_listing_id() -> str:
    return "lst-003"


@pytest.fixture
def unverified_active_listing_id() -> str:
    """Owner published it, but it was never approved."""
    return "lst-004"


@pytest.fixture
def pending_review_id() -> str:
    """Bob's pending review of Carla."""
    return "rev-002"


@pytest.fixture
def approved_review_id() -> str:
    return "rev-001"


@pytest.fixture
def rejected_review_id() -> str:
    return "rev-003"
