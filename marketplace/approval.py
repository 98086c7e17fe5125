"""
Approval workflow for listings and reviews.

This module is the single place that decides whether a listing or review is
publicly visible, and which state changes the workflow allows.

=== LISTINGS ===
Two independent flags:
- verified: set by an administrator (approval)
- active:   set by the owner (publish / unpublish)

A listing is publicly visible ONLY when verified AND active.

=== REVIEWS ===
pending -> approved | rejected. Both end states are terminal.
A review is publicly visible ONLY when status == approved.

Design decisions:
- Visibility is recomputed on every check, never cached on the model
- Transitions return a new model instance and never mutate the argument
- Authorization is checked by the caller before any transition runs
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from marketplace.errors import InvalidTransition
from marketplace.models import Listing, ListingStatus, Review, ReviewStatus

logger = logging.getLogger("approval")


# =============================================================================
# Defaults and query filters
# =============================================================================

# New listings are always created pending
NEW_LISTING_DEFAULTS = {"verified": False, "active": False}

# New reviews are always created pending
NEW_REVIEW_DEFAULTS = {"status": ReviewStatus.PENDING.value}

# The only encoding of the visibility rules; the predicates below read these
PUBLIC_LISTING_FILTERS = {"verified": True, "active": True}

PUBLIC_REVIEW_STATUS = ReviewStatus.APPROVED.value


# =============================================================================
# Visibility predicates
# =============================================================================

def is_listing_visible(verified: Optional[bool], active: Optional[bool]) -> bool:
    """True only when the listing is both admin-verified and owner-published."""
    flags = {"verified": verified, "active": active}
    return all(flags[name] is required for name, required in PUBLIC_LISTING_FILTERS.items())


def is_review_visible(status: Union[ReviewStatus, str, None]) -> bool:
    """True only for approved reviews."""
    return status == PUBLIC_REVIEW_STATUS


def listing_status(verified: Optional[bool], active: Optional[bool]) -> ListingStatus:
    """Effective status of a listing, derived from its two flags."""
    if not verified:
        return ListingStatus.PENDING
    if active:
        return ListingStatus.APPROVED
    return ListingStatus.DEACTIVATED


# =============================================================================
# Audit logging
# =============================================================================

def log_approval_action(
    action: str,
    entity_type: str,
    entity_id: str,
    admin_id: Optional[str] = None,
) -> None:
    """Record an approval action on the audit logger."""
    logger.info(
        f"[Approval] {action.upper()} {entity_type} id={entity_id} "
        f"admin={admin_id or 'system'} at={datetime.now(timezone.utc).isoformat()}"
    )


# =============================================================================
# Listing transitions
# =============================================================================

def approve_listing(listing: Listing, admin_id: Optional[str] = None) -> Listing:
    """
    Approve a pending listing.

    Approval also publishes the listing, so it goes live immediately.
    """
    if listing.verified:
        raise InvalidTransition("listing", listing.id, "verified", "approve")

    log_approval_action("approve", "listing", listing.id, admin_id)
    return listing.model_copy(update={"verified": True, "active": True})


def reject_listing(listing: Listing, admin_id: Optional[str] = None) -> Listing:
    """
    Reject a pending listing.

    Revoking the verified flag of an approved listing is not supported.
    """
    if listing.verified:
        raise InvalidTransition("listing", listing.id, "verified", "reject")

    log_approval_action("reject", "listing", listing.id, admin_id)
    return listing.model_copy(update={"verified": False, "active": False})


def publish_listing(listing: Listing) -> Listing:
    """Owner publishes a listing. Has no public effect until it is verified."""
    if not listing.verified:
        logger.info(f"Listing {listing.id} published but still awaiting approval")
    return listing.model_copy(update={"active": True})


def unpublish_listing(listing: Listing) -> Listing:
    """Owner takes a listing down."""
    log_approval_action("deactivate", "listing", listing.id, None)
    return listing.model_copy(update={"active": False})


# =============================================================================
# Review transitions
# =============================================================================

def _require_pending(review: Review, action: str) -> None:
    if review.status != ReviewStatus.PENDING:
        raise InvalidTransition("review", review.id, str(review.status), action)


def approve_review(review: Review, admin_id: Optional[str] = None) -> Review:
    """pending -> approved."""
    _require_pending(review, "approve")
    log_approval_action("approve", "review", review.id, admin_id)
    return review.model_copy(update={"status": ReviewStatus.APPROVED.value})


def reject_review(review: Review, admin_id: Optional[str] = None) -> Review:
    """pending -> rejected."""
    _require_pending(review, "reject")
    log_approval_action("reject", "review", review.id, admin_id)
    return review.model_copy(update={"status": ReviewStatus.REJECTED.value})
