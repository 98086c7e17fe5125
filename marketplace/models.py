"""
Domain models for the room-rental marketplace core.

These models mirror the rows the hosted backend stores for the marketplace,
trimmed to the fields the approval workflow and notification dispatch need.

Design decisions:
- Using Pydantic for validation and serialization
- Listings carry two independent flags (verified is admin-owned, active is
  owner-owned) rather than one status enum
- Reviews carry a single status enum
- Visibility is never stored; see marketplace.approval
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Enums
# =============================================================================

class ReviewStatus(str, Enum):
    """
    Review moderation states.
    pending -> approved | rejected, both terminal.
    """
    PENDING = "pending"           # Awaiting admin review
    APPROVED = "approved"         # Visible to the public
    REJECTED = "rejected"         # Never visible


class ListingStatus(str, Enum):
    """
    Effective listing status derived from (verified, active).
    Never stored; computed by marketplace.approval.listing_status.
    """
    PENDING = "pending"           # Not verified yet (or rejected)
    APPROVED = "approved"         # Verified and published
    DEACTIVATED = "deactivated"   # Verified but unpublished by the owner


class NotificationType(str, Enum):
    """Semantic source of an in-app notification."""
    MESSAGE = "message"
    BOOKING = "booking"
    LISTING = "listing"
    REVIEW = "review"


# =============================================================================
# Core Domain Models
# =============================================================================

class Profile(BaseModel):
    """
    A marketplace user.

    Recipients are resolved from profiles by the HTTP layer and then passed
    explicitly into dispatch; the core never reads ambient session state.
    """
    id: str = Field(..., description="Unique user identifier")
    full_name: str = Field(..., description="Display name")
    email: Optional[str] = Field(default=None, description="Contact email, if known")
    is_admin: bool = Field(default=False)


class Listing(BaseModel):
    """
    A room listing.

    Publicly visible only when verified AND active.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    owner_id: str = Field(..., description="Reference to the owning profile")
    title: str = Field(..., min_length=1)
    city: Optional[str] = Field(default=None)
    price: Optional[float] = Field(default=None, ge=0, description="Monthly rent")
    verified: bool = Field(default=False, description="Set only by admin approval")
    active: bool = Field(default=False, description="Owner publish/unpublish flag")
    created_at: datetime = Field(default_factory=utcnow)


class Review(BaseModel):
    """
    A review of one user by another, optionally tied to a listing.

    Publicly visible only when status is approved.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    reviewer_id: str = Field(..., description="Who wrote the review")
    reviewed_id: str = Field(..., description="Who is being reviewed")
    listing_id: Optional[str] = Field(default=None)
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(default=None)
    status: ReviewStatus = Field(default=ReviewStatus.PENDING)
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(use_enum_values=True)


# =============================================================================
# Notifications
# =============================================================================

class NewNotification(BaseModel):
    """
    Value object handed to the notification store.

    Keyword-only construction keeps recipient and title from being swapped.
    """
    user_id: str = Field(..., min_length=1, description="Recipient")
    title: str = Field(..., min_length=1)
    content: str
    type: NotificationType
    link: Optional[str] = Field(default=None, description="In-app deep link")
    dedupe_key: Optional[str] = Field(
        default=None,
        description="Optional idempotency key, unique per (user_id, type)"
    )

    model_config = ConfigDict(use_enum_values=True)


class Notification(BaseModel):
    """A persisted in-app notification, owned by its recipient."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    title: str
    content: str
    type: NotificationType
    link: Optional[str] = None
    read: bool = False
    dedupe_key: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    model_config = ConfigDict(use_enum_values=True)


class DispatchRequest(BaseModel):
    """
    A classified event ready for dispatch.

    Produced by marketplace.templates.classify and consumed once by the
    dispatcher. Not persisted.
    """
    event_kind: str
    recipient_id: str = Field(..., min_length=1)
    title: str
    content: str
    notification_type: NotificationType
    link: Optional[str] = None
    recipient_email: Optional[str] = None
    require_email: bool = True
    dedupe_key: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)

    def to_new_notification(self) -> NewNotification:
        return NewNotification(
            user_id=self.recipient_id,
            title=self.title,
            content=self.content,
            type=self.notification_type,
            link=self.link,
            dedupe_key=self.dedupe_key,
        )
