"""
Tests for the marketplace HTTP API.

These tests drive the approval workflow end to end through FastAPI and
check what the notification inbox shows afterwards.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from api.main import app, reset_api_state
from marketplace.channels import FunctionEmailChannel


@pytest.fixture
def api_client(data_store, notification_store, email_channel):
    """Create a test client with fresh state."""
    reset_api_state(
        data_store=data_store,
        notification_store=notification_store,
        email_channel=email_channel,
    )
    yield TestClient(app)
    reset_api_state()


class TestHealthEndpoint:

    def test_health_check(self, api_client):
        """Test that health endpoint returns healthy."""
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestListingEndpoints:
    """Public queries only ever show verified and active listings."""

    def test_public_listings(self, api_client, live_listing_id):
        response = api_client.get("/listings")

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [live_listing_id]

    @pytest.mark.parametrize("listing_id", ["lst-002", "lst-003", "lst-004", "missing"])
    def test_hidden_listing_is_not_found(self, api_client, listing_id):
        """Test pending, deactivated and unverified listings look absent."""
        assert api_client.get(f"/listings/{listing_id}").status_code == 404

    def test_get_live_listing(self, api_client, live_listing_id):
        response = api_client.get(f"/listings/{live_listing_id}")

        assert response.status_code == 200
        assert response.json()["title"] == "Sunny double room in Shoreditch"

    def test_create_listing_starts_pending(self, api_client, bob_id):
        response = api_client.post("/listings", json={
            "owner_id": bob_id,
            "title": "Attic room in Peckham",
            "price": 700,
        })

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["visible"] is False
        assert data["listing"]["verified"] is False
        assert data["listing"]["active"] is False

    def test_create_listing_validation(self, api_client, bob_id):
        response = api_client.post("/listings", json={"owner_id": bob_id, "title": ""})
        assert response.status_code == 422

    def test_publish_unverified_listing_stays_hidden(self, api_client, pending_listing_id):
        response = api_client.post(f"/listings/{pending_listing_id}/publish")

        assert response.status_code == 200
        assert response.json()["listing"]["active"] is True
        assert response.json()["visible"] is False

    def test_unpublish_live_listing(self, api_client, live_listing_id):
        response = api_client.post(f"/listings/{live_listing_id}/unpublish")

        assert response.status_code == 200
        assert response.json()["status"] == "deactivated"
        assert api_client.get(f"/listings/{live_listing_id}").status_code == 404

    def test_publish_missing_listing(self, api_client):
        assert api_client.post("/listings/missing/publish").status_code == 404


class TestListingApproval:

    def test_pending_queue(self, api_client, pending_listing_id, unverified_active_listing_id):
        response = api_client.get("/admin/listings/pending")

        assert {item["id"] for item in response.json()} == {
            pending_listing_id,
            unverified_active_listing_id,
        }

    def test_approve_makes_listing_live_and_notifies_owner(
        self,
        api_client,
        pending_listing_id,
        alice_id,
        email_channel,
        notification_store,
    ):
        """Test approval, visibility and the owner's notification together."""
        response = api_client.post(
            f"/admin/listings/{pending_listing_id}/approve",
            json={"admin_id": "admin-001"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["listing"]["verified"] is True
        assert data["listing"]["active"] is True
        assert data["notification"]["notification_created"] is True
        assert data["notification"]["email_sent"] is True

        assert api_client.get(f"/listings/{pending_listing_id}").status_code == 200

        inbox = notification_store.list_notifications(alice_id)
        assert len(inbox) == 1
        assert inbox[0].title == "Listing Approved"
        assert email_channel.find_message_to("alice.martin@example.com") is not None

    def test_approve_without_body(self, api_client, pending_listing_id):
        response = api_client.post(f"/admin/listings/{pending_listing_id}/approve")
        assert response.status_code == 200

    def test_owner_without_email_gets_in_app_only(
        self, api_client, unverified_active_listing_id, carla_id, email_channel, notification_store
    ):
        response = api_client.post(f"/admin/listings/{unverified_active_listing_id}/approve")

        assert response.json()["notification"]["email_sent"] is False
        assert notification_store.unread_count(carla_id) == 1
        assert email_channel.get_sent_count() == 0

    def test_approve_twice_conflicts(self, api_client, live_listing_id):
        response = api_client.post(f"/admin/listings/{live_listing_id}/approve")
        assert response.status_code == 409

    def test_reject_pending_listing(self, api_client, unverified_active_listing_id, notification_store):
        response = api_client.post(f"/admin/listings/{unverified_active_listing_id}/reject")

        assert response.status_code == 200
        assert response.json()["listing"]["active"] is False
        assert response.json()["notification"] is None
        assert notification_store.count() == 0

    def test_reject_approved_listing_conflicts(self, api_client, live_listing_id):
        assert api_client.post(f"/admin/listings/{live_listing_id}/reject").status_code == 409

    def test_approve_missing_listing(self, api_client):
        assert api_client.post("/admin/listings/missing/approve").status_code == 404


class TestReviewEndpoints:

    def test_public_reviews(self, api_client, approved_review_id, alice_id):
        assert [r["id"] for r in api_client.get("/reviews").json()] == [approved_review_id]
        assert len(api_client.get("/reviews", params={"reviewed_id": alice_id}).json()) == 1

    def test_create_review_is_pending(self, api_client, alice_id, bob_id, notification_store):
        """Test a new review is hidden and notifies nobody yet."""
        response = api_client.post("/reviews", json={
            "reviewer_id": bob_id,
            "reviewed_id": alice_id,
            "rating": 5,
            "comment": "Great landlord",
        })

        assert response.status_code == 201
        assert response.json()["status"] == "pending"
        assert notification_store.count() == 0

    def test_cannot_review_self(self, api_client, alice_id):
        response = api_client.post("/reviews", json={
            "reviewer_id": alice_id,
            "reviewed_id": alice_id,
            "rating": 5,
        })
        assert response.status_code == 400

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, api_client, alice_id, bob_id, rating):
        response = api_client.post("/reviews", json={
            "reviewer_id": bob_id,
            "reviewed_id": alice_id,
            "rating": rating,
        })
        assert response.status_code == 422

    def test_approve_review_notifies_reviewed_user(
        self, api_client, pending_review_id, carla_id, notification_store
    ):
        response = api_client.post(
            f"/admin/reviews/{pending_review_id}/approve",
            json={"admin_id": "admin-001"},
        )

        assert response.status_code == 200
        assert response.json()["review"]["status"] == "approved"

        inbox = notification_store.list_notifications(carla_id)
        assert len(inbox) == 1
        assert inbox[0].content == "Bob Chen left you a new review"
        assert pending_review_id in {r["id"] for r in api_client.get("/reviews").json()}

    def test_reject_review(self, api_client, pending_review_id, notification_store):
        response = api_client.post(f"/admin/reviews/{pending_review_id}/reject")

        assert response.status_code == 200
        assert response.json()["review"]["status"] == "rejected"
        assert notification_store.count() == 0

    @pytest.mark.parametrize("action", ["approve", "reject"])
    def test_terminal_review_conflicts(self, api_client, rejected_review_id, action):
        response = api_client.post(f"/admin/reviews/{rejected_review_id}/{action}")
        assert response.status_code == 409

    def test_pending_review_queue(self, api_client):
        ids = {r["id"] for r in api_client.get("/admin/reviews/pending").json()}
        assert ids == {"rev-002", "rev-004"}


class TestInboxEndpoints:

    @pytest.fixture
    def inbox(self, api_client):
        for sender in ("Bob", "Carla"):
            api_client.post("/notify/new_message", json={
                "data": {"recipient_id": "u1", "sender_name": sender},
            })
        return api_client.get("/users/u1/notifications").json()

    def test_list_newest_first(self, inbox):
        assert [n["content"] for n in inbox] == [
            "You have a new message from Carla",
            "You have a new message from Bob",
        ]

    def test_mark_read(self, api_client, inbox):
        response = api_client.post(f"/users/u1/notifications/{inbox[0]['id']}/read")

        assert response.status_code == 200
        assert response.json()["read"] is True
        assert api_client.get("/users/u1/notifications/unread-count").json() == {
            "user_id": "u1",
            "unread": 1,
        }

    def test_mark_read_by_other_user(self, api_client, inbox):
        response = api_client.post(f"/users/u2/notifications/{inbox[0]['id']}/read")
        assert response.status_code == 404

    def test_mark_all_read(self, api_client, inbox):
        response = api_client.post("/users/u1/notifications/read-all")

        assert response.json() == {"user_id": "u1", "marked": 2}
        unread = api_client.get("/users/u1/notifications", params={"unread_only": True}).json()
        assert unread == []


class TestNotifyEndpoint:

    def test_notify_new_review(self, api_client, email_channel):
        response = api_client.post("/notify/new_review", json={
            "data": {"user_id": "u1", "reviewer_name": "Alice", "recipient_email": "a@example.com"},
        })

        assert response.status_code == 200
        data = response.json()
        assert data["notification_created"] is True
        assert data["email_sent"] is True
        assert data["error"] is None
        assert data["notification"]["link"] == "/profile"
        assert email_channel.get_sent_count() == 1

    def test_unknown_event_kind(self, api_client, notification_store):
        response = api_client.post("/notify/price_drop", json={"data": {}})

        assert response.status_code == 400
        assert notification_store.count() == 0

    def test_missing_template_data(self, api_client):
        response = api_client.post("/notify/new_review", json={"data": {"user_id": "u1"}})

        assert response.status_code == 422
        assert "reviewer_name" in response.json()["detail"]

    def test_wrongly_typed_template_data(self, api_client, notification_store):
        """Test a non-string recipient is a client error, not a crash."""
        response = api_client.post("/notify/new_message", json={
            "data": {"recipient_id": 42, "sender_name": "Bob"},
        })

        assert response.status_code == 422
        assert "recipient_id" in response.json()["detail"]
        assert notification_store.count() == 0

    def test_unrelated_keys_are_ignored(self, api_client):
        response = api_client.post("/notify/new_message", json={
            "data": {"recipient_id": "u1", "sender_name": "Bob", "self": "x"},
        })

        assert response.status_code == 200
        assert response.json()["notification"]["content"] == "You have a new message from Bob"

    def test_email_failure_is_reported_not_raised(self, data_store, notification_store, failing_email_channel):
        reset_api_state(
            data_store=data_store,
            notification_store=notification_store,
            email_channel=failing_email_channel,
        )
        client = TestClient(app)

        response = client.post("/notify/new_message", json={
            "data": {"recipient_id": "u1", "sender_name": "Bob", "recipient_email": "a@example.com"},
        })

        assert response.status_code == 200
        assert response.json()["error"] == "email_send_failed"
        assert notification_store.count() == 1
        reset_api_state()


class TestLifespan:

    def test_shutdown_closes_email_client(self, data_store, notification_store):
        """Test the function channel's HTTP client is released on shutdown."""
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        channel = FunctionEmailChannel("https://fn.example.com/send", client=client)
        reset_api_state(
            data_store=data_store,
            notification_store=notification_store,
            email_channel=channel,
        )

        with TestClient(app) as api_client:
            response = api_client.post("/notify/new_message", json={
                "data": {"recipient_id": "u1", "sender_name": "Bob", "recipient_email": "a@example.com"},
            })
            assert response.json()["email_sent"] is True
            assert client.is_closed is False

        assert client.is_closed is True
        reset_api_state()
