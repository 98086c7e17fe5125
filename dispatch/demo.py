"""
Demonstration scenarios for the notification dispatch engine.

Each scenario wires a fresh event bus, notification store and mock email
channel, publishes one marketplace event, and prints what was stored and
what was emailed. Run them through cli.py.
"""

from dataclasses import dataclass

from dispatch.dispatcher import NotificationDispatcher
from dispatch.event_bus import EventBus
from dispatch.events import listing_approved, message_sent, review_posted, viewing_requested
from dispatch.notification_service import NotificationService
from marketplace.approval import approve_listing, approve_review
from marketplace.channels import EmailChannel
from marketplace.config import get_settings
from marketplace.data_store import DataStore
from marketplace.notification_store import NotificationStore


@dataclass
class DemoEnvironment:
    event_bus: EventBus
    data_store: DataStore
    store: NotificationStore
    email: EmailChannel
    service: NotificationService


def _setup(email_fail_rate: float = 0.0) -> DemoEnvironment:
    settings = get_settings()
    event_bus = EventBus()
    store = NotificationStore()
    email = EmailChannel(fail_rate=email_fail_rate)
    dispatcher = NotificationDispatcher(store, email, site_url=settings.site_url)
    service = NotificationService(dispatcher, event_bus=event_bus)
    service.start()
    return DemoEnvironment(
        event_bus=event_bus,
        data_store=DataStore(data_dir=settings.data_dir),
        store=store,
        email=email,
        service=service,
    )


def _banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(f"DEMO: {title}")
    print("=" * 70 + "\n")


def _report(env: DemoEnvironment, user_id: str) -> None:
    print("\nIn-app notifications:")
    for notification in env.store.list_notifications(user_id):
        print(f"  [{notification.type}] {notification.title}: {notification.content} -> {notification.link}")
    print("\nEmails:")
    for msg in env.email.sent_messages:
        print(f"  {msg}")
    if not env.email.sent_messages:
        print("  (none)")
    env.service.stop()


def run_message_demo():
    """Bob messages Alice: Alice gets an in-app notification and an email."""
    _banner("New Message")
    env = _setup()
    alice = env.data_store.get_profile("user-001")

    env.event_bus.publish(message_sent(
        recipient_id=alice.id,
        sender_name="Bob Chen",
        recipient_email=alice.email,
    ))

    _report(env, alice.id)
    return env.service.get_outcomes()


def run_booking_demo():
    """A tenant requests a viewing of Alice's listing."""
    _banner("New Viewing Request")
    env = _setup()
    listing = env.data_store.get_listing("lst-001")
    owner = env.data_store.get_profile(listing.owner_id)

    env.event_bus.publish(viewing_requested(
        owner_id=owner.id,
        listing_id=listing.id,
        listing_title=listing.title,
        owner_email=owner.email,
    ))

    _report(env, owner.id)
    return env.service.get_outcomes()


def run_listing_approved_demo():
    """An admin approves Alice's pending listing, which goes live."""
    _banner("Listing Approved")
    env = _setup()
    listing = env.data_store.get_listing("lst-002")
    owner = env.data_store.get_profile(listing.owner_id)

    approved = env.data_store.save_listing(approve_listing(listing, admin_id="admin-001"))
    print(f"Listing {approved.id} now verified={approved.verified} active={approved.active}")

    env.event_bus.publish(listing_approved(
        owner_id=owner.id,
        listing_id=approved.id,
        listing_title=approved.title,
        owner_email=owner.email,
        admin_id="admin-001",
    ))

    _report(env, owner.id)
    return env.service.get_outcomes()


def run_review_demo():
    """
    An admin approves Carla's pending review.

    Carla has no email on file, so she only gets the in-app notification.
    """
    _banner("New Review (no email on file)")
    env = _setup()
    review = env.data_store.get_review("rev-002")
    reviewer = env.data_store.get_profile(review.reviewer_id)
    reviewed = env.data_store.get_profile(review.reviewed_id)

    env.data_store.save_review(approve_review(review, admin_id="admin-001"))
    env.event_bus.publish(review_posted(
        reviewed_id=reviewed.id,
        review_id=review.id,
        reviewer_name=reviewer.full_name,
        reviewed_email=reviewed.email,
    ))

    _report(env, reviewed.id)
    return env.service.get_outcomes()


def run_email_failure_demo():
    """
    The mail service is down: the notification is stored anyway and the
    outcome is flagged for an email retry.
    """
    _banner("Email Failure (partial success)")
    env = _setup(email_fail_rate=1.0)
    alice = env.data_store.get_profile("user-001")

    env.event_bus.publish(message_sent(
        recipient_id=alice.id,
        sender_name="Bob Chen",
        recipient_email=alice.email,
    ))

    retry = env.service.failed_email_outcomes()
    _report(env, alice.id)
    print(f"\nEmails to retry: {len(retry)}")
    return env.service.get_outcomes()
