"""
JSON-backed data store for profiles, listings and reviews.

This module provides the data access layer the approval workflow and the
HTTP API read from. Fixtures under data/ seed the store; writes update
in-memory state only.

Design decisions:
- Lazy loading of each fixture file on first access
- Public queries filter through marketplace.approval, never through their own
  copy of the visibility rule
- Writes replace whole model instances under a lock
"""

import json
import threading
from pathlib import Path
from typing import Optional

from marketplace.approval import (
    NEW_LISTING_DEFAULTS,
    NEW_REVIEW_DEFAULTS,
    is_listing_visible,
    is_review_visible,
)
from marketplace.config import get_settings
from marketplace.models import Listing, Profile, Review, ReviewStatus


class DataStore:
    """
    Central data store that loads and manages JSON fixtures.

    In the real marketplace these are rows in the hosted backend; this store
    simulates the handful of queries the core needs.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the data store.

        Args:
            data_dir: Path to the data directory containing JSON fixtures.
                     Defaults to the configured ROOMS_DATA_DIR.
        """
        if data_dir is None:
            data_dir = get_settings().data_dir

        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()

        # In-memory caches - loaded lazily
        self._profiles: Optional[dict[str, Profile]] = None
        self._listings: Optional[dict[str, Listing]] = None
        self._reviews: Optional[dict[str, Review]] = None

    # =========================================================================
    # Data Loading (lazy)
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        """Load a JSON fixture file."""
        filepath = self.data_dir / filename
        if not filepath.exists():
            return []
        with open(filepath, "r") as f:
            return json.load(f)

    def _ensure_profiles_loaded(self):
        if self._profiles is None:
            data = self._load_json("profiles.json")
            self._profiles = {p["id"]: Profile(**p) for p in data}

    def _ensure_listings_loaded(self):
        if self._listings is None:
            data = self._load_json("listings.json")
            self._listings = {item["id"]: Listing(**item) for item in data}

    def _ensure_reviews_loaded(self):
        if self._reviews is None:
            data = self._load_json("reviews.json")
            self._reviews = {r["id"]: Review(**r) for r in data}

    # =========================================================================
    # Profile Operations
    # =========================================================================

    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Get a profile by ID."""
        self._ensure_profiles_loaded()
        return self._profiles.get(user_id)

    def get_profiles(self) -> list[Profile]:
        self._ensure_profiles_loaded()
        return list(self._profiles.values())

    # =========================================================================
    # Listing Operations
    # =========================================================================

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        """Get a listing by ID, whatever its approval state."""
        self._ensure_listings_loaded()
        return self._listings.get(listing_id)

    def get_listings(self) -> list[Listing]:
        self._ensure_listings_loaded()
        return list(self._listings.values())

    def get_public_listings(self) -> list[Listing]:
        """Listings anyone may see: verified and active."""
        return [
            listing for listing in self.get_listings()
            if is_listing_visible(listing.verified, listing.active)
        ]

    def get_pending_listings(self) -> list[Listing]:
        """Listings awaiting admin approval."""
        return [listing for listing in self.get_listings() if not listing.verified]

    def get_listings_by_owner(self, owner_id: str) -> list[Listing]:
        return [listing for listing in self.get_listings() if listing.owner_id == owner_id]

    def create_listing(
        self,
        owner_id: str,
        title: str,
        city: Optional[str] = None,
        price: Optional[float] = None,
    ) -> Listing:
        """Create a listing. New listings always start unverified and inactive."""
        listing = Listing(
            owner_id=owner_id,
            title=title,
            city=city,
            price=price,
            **NEW_LISTING_DEFAULTS,
        )
        return self.save_listing(listing)

    def save_listing(self, listing: Listing) -> Listing:
        """Insert or replace a listing."""
        self._ensure_listings_loaded()
        with self._lock:
            self._listings[listing.id] = listing
        return listing

    # =========================================================================
    # Review Operations
    # =========================================================================

    def get_review(self, review_id: str) -> Optional[Review]:
        self._ensure_reviews_loaded()
        return self._reviews.get(review_id)

    def get_reviews(self) -> list[Review]:
        self._ensure_reviews_loaded()
        return list(self._reviews.values())

    def get_public_reviews(self, reviewed_id: Optional[str] = None) -> list[Review]:
        """
        Approved reviews, optionally only those about one user.
        """
        return [
            review for review in self.get_reviews()
            if is_review_visible(review.status)
            and (reviewed_id is None or review.reviewed_id == reviewed_id)
        ]

    def get_pending_reviews(self) -> list[Review]:
        return [r for r in self.get_reviews() if r.status == ReviewStatus.PENDING]

    def create_review(
        self,
        reviewer_id: str,
        reviewed_id: str,
        rating: int,
        comment: Optional[str] = None,
        listing_id: Optional[str] = None,
    ) -> Review:
        """Create a review. New reviews always start pending."""
        review = Review(
            reviewer_id=reviewer_id,
            reviewed_id=reviewed_id,
            rating=rating,
            comment=comment,
            listing_id=listing_id,
            **NEW_REVIEW_DEFAULTS,
        )
        return self.save_review(review)

    def save_review(self, review: Review) -> Review:
        """Insert or replace a review."""
        self._ensure_reviews_loaded()
        with self._lock:
            self._reviews[review.id] = review
        return review

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def reload(self):
        """
        Force reload all data from JSON files.

        Drops every in-memory write.
        """
        self._profiles = None
        self._listings = None
        self._reviews = None
