"""
Tests for the JSON-backed data store.

These tests verify fixture loading and that public queries only return
what the approval workflow says is visible.
"""

from pathlib import Path

from marketplace.config import get_settings
from marketplace.data_store import DataStore
from marketplace.models import ReviewStatus


class TestProfiles:

    def test_loads_profiles(self, data_store: DataStore, alice_id: str):
        """Test loading profiles from the fixture."""
        alice = data_store.get_profile(alice_id)

        assert alice is not None
        assert alice.full_name == "Alice Martin"
        assert alice.email == "alice.martin@example.com"
        assert len(data_store.get_profiles()) == 4

    def test_profile_without_email(self, data_store: DataStore, carla_id: str):
        assert data_store.get_profile(carla_id).email is None

    def test_unknown_profile(self, data_store: DataStore):
        assert data_store.get_profile("nobody") is None


class TestListings:

    def test_public_listings_are_verified_and_active(self, data_store: DataStore, live_listing_id: str):
        """Only the verified and active fixture listing is public."""
        public = data_store.get_public_listings()

        assert [listing.id for listing in public] == [live_listing_id]

    def test_pending_listings(
        self,
        data_store: DataStore,
        pending_listing_id: str,
        unverified_active_listing_id: str,
    ):
        """Test pending means unverified, whatever the active flag."""
        pending = {listing.id for listing in data_store.get_pending_listings()}

        assert pending == {pending_listing_id, unverified_active_listing_id}

    def test_get_listing_ignores_visibility(self, data_store: DataStore, deactivated_listing_id: str):
        listing = data_store.get_listing(deactivated_listing_id)

        assert listing is not None
        assert listing.verified is True
        assert listing.active is False

    def test_listings_by_owner(self, data_store: DataStore, alice_id: str):
        owned = data_store.get_listings_by_owner(alice_id)
        assert {listing.id for listing in owned} == {"lst-001", "lst-002"}

    def test_create_listing_starts_hidden(self, data_store: DataStore, bob_id: str):
        """Test new listings are unverified and inactive."""
        listing = data_store.create_listing(bob_id, "Attic room in Peckham", city="London", price=700)

        assert listing.verified is False
        assert listing.active is False
        assert data_store.get_listing(listing.id) == listing
        assert listing not in data_store.get_public_listings()
        assert listing in data_store.get_pending_listings()

    def test_reload_drops_writes(self, data_store: DataStore, bob_id: str):
        listing = data_store.create_listing(bob_id, "Temporary room")

        data_store.reload()

        assert data_store.get_listing(listing.id) is None
        assert len(data_store.get_listings()) == 4


class TestReviews:

    def test_public_reviews(self, data_store: DataStore, approved_review_id: str):
        public = data_store.get_public_reviews()
        assert [r.id for r in public] == [approved_review_id]

    def test_public_reviews_for_user(self, data_store: DataStore, alice_id: str, bob_id: str):
        assert [r.id for r in data_store.get_public_reviews(alice_id)] == ["rev-001"]
        assert data_store.get_public_reviews(bob_id) == []

    def test_pending_reviews(self, data_store: DataStore):
        assert {r.id for r in data_store.get_pending_reviews()} == {"rev-002", "rev-004"}

    def test_create_review_starts_pending(self, data_store: DataStore, alice_id: str, bob_id: str):
        """Test new reviews are pending and not public."""
        review = data_store.create_review(bob_id, alice_id, rating=4, comment="Tidy and friendly")

        assert review.status == ReviewStatus.PENDING
        assert review not in data_store.get_public_reviews(alice_id)


class TestMissingFixtures:

    def test_missing_files_load_empty(self, tmp_path: Path):
        """Test an empty data directory behaves like an empty backend."""
        store = DataStore(data_dir=tmp_path)

        assert store.get_profiles() == []
        assert store.get_public_listings() == []
        assert store.get_public_reviews() == []

    def test_default_directory_comes_from_settings(self, monkeypatch, tmp_path: Path):
        """Test ROOMS_DATA_DIR picks the fixture directory."""
        monkeypatch.setenv("ROOMS_DATA_DIR", str(tmp_path))
        get_settings.cache_clear()
        try:
            store = DataStore()
        finally:
            get_settings.cache_clear()

        assert store.data_dir == tmp_path
        assert store.get_profiles() == []
