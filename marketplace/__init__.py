"""
Room-rental marketplace core: approval workflow and notification building blocks.

This package contains the pieces the dispatch engine is built from:
- Domain models (Profile, Listing, Review, Notification, DispatchRequest)
- Visibility predicates and approval transitions
- Event classifier (templates)
- Notification store adapter
- Email channels
- JSON-backed data store for profiles, listings and reviews
"""

from marketplace.models import (
    Profile,
    Listing,
    Review,
    ReviewStatus,
    ListingStatus,
    Notification,
    NewNotification,
    NotificationType,
    DispatchRequest,
)
from marketplace.approval import is_listing_visible, is_review_visible
from marketplace.templates import EventKind, classify
from marketplace.notification_store import NotificationStore
from marketplace.channels import EmailChannel, FunctionEmailChannel, EmailResult
from marketplace.data_store import DataStore

__all__ = [
    "Profile",
    "Listing",
    "Review",
    "ReviewStatus",
    "ListingStatus",
    "Notification",
    "NewNotification",
    "NotificationType",
    "DispatchRequest",
    "is_listing_visible",
    "is_review_visible",
    "EventKind",
    "classify",
    "NotificationStore",
    "EmailChannel",
    "FunctionEmailChannel",
    "EmailResult",
    "DataStore",
]
