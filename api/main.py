"""
FastAPI application for the marketplace approval workflow and notifications.

This application provides:
1. Public listing and review queries, filtered by the visibility rules
2. Owner publish/unpublish and admin approve/reject actions
3. The recipient's notification inbox (list, unread count, mark read)
4. A generic /notify/{event_kind} endpoint over classify + dispatch

Run with:
    uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.

Authorization is assumed to happen in front of this service; admin routes
do not check credentials themselves.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from dispatch.dispatcher import DispatchOutcome, NotificationDispatcher
from dispatch.triggers import NotificationTriggers
from marketplace import approval
from marketplace.approval import is_listing_visible, listing_status
from marketplace.channels import build_email_channel
from marketplace.config import configure_logging, get_settings
from marketplace.data_store import DataStore
from marketplace.errors import (
    InvalidTransition,
    NotificationNotFound,
    TemplateDataError,
    UnknownEventKind,
)
from marketplace.models import Listing, ListingStatus, Notification, Review
from marketplace.notification_store import NotificationStore

logger = logging.getLogger("api")


# =============================================================================
# Request / Response models
# =============================================================================

class ListingCreate(BaseModel):
    owner_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    city: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)


class ListingView(BaseModel):
    """A listing plus its derived status."""
    listing: Listing
    status: ListingStatus
    visible: bool


class ReviewCreate(BaseModel):
    reviewer_id: str = Field(..., min_length=1)
    reviewed_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    listing_id: Optional[str] = None


class ModerationRequest(BaseModel):
    admin_id: Optional[str] = None


class ListingApprovalResponse(BaseModel):
    listing: Listing
    notification: Optional[DispatchOutcome] = None


class ReviewApprovalResponse(BaseModel):
    review: Review
    notification: Optional[DispatchOutcome] = None


class NotifyRequest(BaseModel):
    """Template data for /notify/{event_kind}."""
    data: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Dependencies
# =============================================================================

# Module-level instances (reset_api_state swaps them in tests)
_data_store: Optional[DataStore] = None
_notification_store: Optional[NotificationStore] = None
_triggers: Optional[NotificationTriggers] = None


def get_store() -> DataStore:
    global _data_store
    if _data_store is None:
        _data_store = DataStore(data_dir=get_settings().data_dir)
    return _data_store


def get_notification_store() -> NotificationStore:
    global _notification_store
    if _notification_store is None:
        _notification_store = NotificationStore()
    return _notification_store


def get_triggers() -> NotificationTriggers:
    global _triggers
    if _triggers is None:
        settings = get_settings()
        dispatcher = NotificationDispatcher(
            get_notification_store(),
            build_email_channel(settings),
            site_url=settings.site_url,
        )
        _triggers = NotificationTriggers(dispatcher)
    return _triggers


def reset_api_state(
    data_store: Optional[DataStore] = None,
    notification_store: Optional[NotificationStore] = None,
    email_channel=None,
) -> None:
    """Reset API state (for testing)."""
    global _data_store, _notification_store, _triggers
    _data_store = data_store
    _notification_store = notification_store
    _triggers = None
    if notification_store is not None and email_channel is not None:
        _triggers = NotificationTriggers(
            NotificationDispatcher(
                notification_store, email_channel, site_url=get_settings().site_url
            )
        )


def close_email_channel() -> None:
    """Release the email channel's HTTP client, if it holds one."""
    global _triggers
    if _triggers is None:
        return
    close = getattr(_triggers.dispatcher.email, "close", None)
    if close is not None:
        close()
    _triggers = None


def _listing_or_404(data_store: DataStore, listing_id: str) -> Listing:
    listing = data_store.get_listing(listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Listing not found: {listing_id}")
    return listing


def _review_or_404(data_store: DataStore, review_id: str) -> Review:
    review = data_store.get_review(review_id)
    if review is None:
        raise HTTPException(status_code=404, detail=f"Review not found: {review_id}")
    return review


def _view(listing: Listing) -> ListingView:
    return ListingView(
        listing=listing,
        status=listing_status(listing.verified, listing.active),
        visible=is_listing_visible(listing.verified, listing.active),
    )


# =============================================================================
# Application
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    configure_logging()
    logger.info("Starting marketplace notification API")
    yield
    logger.info("Shutting down")
    close_email_channel()


app = FastAPI(
    title="Room Marketplace Notifications",
    description="Approval workflow and notification dispatch for the room-rental marketplace",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "room-marketplace-notifications"}


# =============================================================================
# Listings
# =============================================================================

@app.get("/listings", response_model=list[Listing], tags=["Listings"])
def list_public_listings(data_store: DataStore = Depends(get_store)):
    """Only approved (verified and active) listings."""
    return data_store.get_public_listings()


@app.get("/listings/{listing_id}", response_model=Listing, tags=["Listings"])
def get_public_listing(listing_id: str, data_store: DataStore = Depends(get_store)):
    """A single listing, hidden unless it is publicly visible."""
    listing = data_store.get_listing(listing_id)
    if listing is None or not is_listing_visible(listing.verified, listing.active):
        raise HTTPException(status_code=404, detail=f"Listing not found: {listing_id}")
    return listing


@app.post("/listings", response_model=ListingView, status_code=201, tags=["Listings"])
def create_listing(body: ListingCreate, data_store: DataStore = Depends(get_store)):
    """Create a listing. It stays hidden until an admin approves it."""
    listing = data_store.create_listing(
        owner_id=body.owner_id,
        title=body.title,
        city=body.city,
        price=body.price,
    )
    approval.log_approval_action("create", "listing", listing.id, None)
    return _view(listing)


@app.post("/listings/{listing_id}/publish", response_model=ListingView, tags=["Listings"])
def publish_listing(listing_id: str, data_store: DataStore = Depends(get_store)):
    """Owner publishes a listing."""
    listing = _listing_or_404(data_store, listing_id)
    return _view(data_store.save_listing(approval.publish_listing(listing)))


@app.post("/listings/{listing_id}/unpublish", response_model=ListingView, tags=["Listings"])
def unpublish_listing(listing_id: str, data_store: DataStore = Depends(get_store)):
    """Owner takes a listing down."""
    listing = _listing_or_404(data_store, listing_id)
    return _view(data_store.save_listing(approval.unpublish_listing(listing)))


@app.get("/admin/listings/pending", response_model=list[Listing], tags=["Admin"])
def list_pending_listings(data_store: DataStore = Depends(get_store)):
    return data_store.get_pending_listings()


@app.post(
    "/admin/listings/{listing_id}/approve",
    response_model=ListingApprovalResponse,
    tags=["Admin"],
)
def approve_listing(
    listing_id: str,
    body: Optional[ModerationRequest] = None,
    data_store: DataStore = Depends(get_store),
    triggers: NotificationTriggers = Depends(get_triggers),
):
    """
    Approve and activate a listing, then notify its owner.

    A failed notification is reported in the response but never undoes the
    approval.
    """
    listing = _listing_or_404(data_store, listing_id)
    admin_id = body.admin_id if body else None
    try:
        approved = approval.approve_listing(listing, admin_id=admin_id)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    data_store.save_listing(approved)

    owner = data_store.get_profile(approved.owner_id)
    outcome = triggers.notify_listing_approved(
        approved.owner_id,
        approved.title,
        owner.email if owner else None,
    )
    if not outcome.delivered:
        logger.error(f"Listing {approved.id} approved but owner was not notified: {outcome.error_detail}")

    return ListingApprovalResponse(listing=approved, notification=outcome)


@app.post(
    "/admin/listings/{listing_id}/reject",
    response_model=ListingApprovalResponse,
    tags=["Admin"],
)
def reject_listing(
    listing_id: str,
    body: Optional[ModerationRequest] = None,
    data_store: DataStore = Depends(get_store),
):
    listing = _listing_or_404(data_store, listing_id)
    try:
        rejected = approval.reject_listing(listing, admin_id=body.admin_id if body else None)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ListingApprovalResponse(listing=data_store.save_listing(rejected))


# =============================================================================
# Reviews
# =============================================================================

@app.get("/reviews", response_model=list[Review], tags=["Reviews"])
def list_public_reviews(
    reviewed_id: Optional[str] = None,
    data_store: DataStore = Depends(get_store),
):
    """Only approved reviews, optionally about one user."""
    return data_store.get_public_reviews(reviewed_id=reviewed_id)


@app.post("/reviews", response_model=Review, status_code=201, tags=["Reviews"])
def create_review(body: ReviewCreate, data_store: DataStore = Depends(get_store)):
    """Submit a review. It stays hidden until an admin approves it."""
    if body.reviewer_id == body.reviewed_id:
        raise HTTPException(status_code=400, detail="Users cannot review themselves")
    review = data_store.create_review(
        reviewer_id=body.reviewer_id,
        reviewed_id=body.reviewed_id,
        rating=body.rating,
        comment=body.comment,
        listing_id=body.listing_id,
    )
    approval.log_approval_action("create", "review", review.id, None)
    return review


@app.get("/admin/reviews/pending", response_model=list[Review], tags=["Admin"])
def list_pending_reviews(data_store: DataStore = Depends(get_store)):
    return data_store.get_pending_reviews()


@app.post(
    "/admin/reviews/{review_id}/approve",
    response_model=ReviewApprovalResponse,
    tags=["Admin"],
)
def approve_review(
    review_id: str,
    body: Optional[ModerationRequest] = None,
    data_store: DataStore = Depends(get_store),
    triggers: NotificationTriggers = Depends(get_triggers),
):
    """Approve a pending review and tell the reviewed user about it."""
    review = _review_or_404(data_store, review_id)
    try:
        approved = approval.approve_review(review, admin_id=body.admin_id if body else None)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    data_store.save_review(approved)

    reviewer = data_store.get_profile(approved.reviewer_id)
    reviewed = data_store.get_profile(approved.reviewed_id)
    outcome = triggers.notify_new_review(
        approved.reviewed_id,
        reviewer.full_name if reviewer else "Someone",
        reviewed.email if reviewed else None,
    )
    if not outcome.delivered:
        logger.error(f"Review {approved.id} approved but user was not notified: {outcome.error_detail}")

    return ReviewApprovalResponse(review=approved, notification=outcome)


@app.post(
    "/admin/reviews/{review_id}/reject",
    response_model=ReviewApprovalResponse,
    tags=["Admin"],
)
def reject_review(
    review_id: str,
    body: Optional[ModerationRequest] = None,
    data_store: DataStore = Depends(get_store),
):
    review = _review_or_404(data_store, review_id)
    try:
        rejected = approval.reject_review(review, admin_id=body.admin_id if body else None)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ReviewApprovalResponse(review=data_store.save_review(rejected))


# =============================================================================
# Notification inbox
# =============================================================================

@app.get(
    "/users/{user_id}/notifications",
    response_model=list[Notification],
    tags=["Notifications"],
)
def list_notifications(
    user_id: str,
    unread_only: bool = False,
    store: NotificationStore = Depends(get_notification_store),
):
    return store.list_notifications(user_id, unread_only=unread_only)


@app.get("/users/{user_id}/notifications/unread-count", tags=["Notifications"])
def unread_count(user_id: str, store: NotificationStore = Depends(get_notification_store)):
    return {"user_id": user_id, "unread": store.unread_count(user_id)}


@app.post(
    "/users/{user_id}/notifications/read-all",
    tags=["Notifications"],
)
def mark_all_read(user_id: str, store: NotificationStore = Depends(get_notification_store)):
    return {"user_id": user_id, "marked": store.mark_all_read(user_id)}


@app.post(
    "/users/{user_id}/notifications/{notification_id}/read",
    response_model=Notification,
    tags=["Notifications"],
)
def mark_read(
    user_id: str,
    notification_id: str,
    store: NotificationStore = Depends(get_notification_store),
):
    try:
        return store.mark_read(notification_id, user_id)
    except NotificationNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Generic dispatch
# =============================================================================

@app.post("/notify/{event_kind}", response_model=DispatchOutcome, tags=["Notifications"])
def notify(
    event_kind: str,
    body: NotifyRequest,
    triggers: NotificationTriggers = Depends(get_triggers),
):
    """
    Classify and dispatch one event.

    Store and email failures come back in the outcome with status 200; only
    an unknown event kind or missing template data is a client error.
    """
    try:
        return triggers.notify(event_kind, body.data)
    except UnknownEventKind as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TemplateDataError as e:
        raise HTTPException(status_code=422, detail=str(e))
