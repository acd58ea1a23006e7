"""Integration tests for the abandoned cart API endpoints via TestClient."""

from datetime import UTC, datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from recovery.api.routes import router
from recovery.registry import get_store
from recovery.session.store import SessionStore


@pytest.fixture()
def api_store(clock, policy, emitter):
    return SessionStore(clock=clock, policy=policy, emitter=emitter)


@pytest.fixture()
def client(api_store):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_store] = lambda: api_store
    return TestClient(app)


def _post_cart(client, email="jane@example.com", items=None, action="track", name="Jane"):
    payload = {"email": email, "name": name, "action": action}
    if items is not None:
        payload["items"] = items
    return client.post("/carts/abandoned", json=payload)


WIDGET = {"id": "p1", "name": "Widget", "price": 1000, "quantity": 2}
GADGET = {"id": "p2", "name": "Gadget", "price": 2500, "quantity": 1}


class TestReceiveCart:
    def test_track_cart(self, client):
        response = _post_cart(client, items=[WIDGET])

        assert response.status_code == 200
        cart = response.json()["cart"]
        assert cart["status"] == "Active"
        assert cart["total_value"] == 2000
        assert cart["items"][0]["product_id"] == "p1"

    def test_update_cart(self, client):
        _post_cart(client, items=[WIDGET])

        response = _post_cart(client, items=[WIDGET, GADGET], action="update")

        assert response.status_code == 200
        assert response.json()["cart"]["total_value"] == 4500

    def test_native_item_fields_accepted(self, client):
        response = _post_cart(
            client, items=[{"product_id": "p3", "name": "Gizmo", "unit_price": 300, "quantity": 3}]
        )
        assert response.json()["cart"]["total_value"] == 900

    def test_missing_items_rejected(self, client):
        response = _post_cart(client)

        assert response.status_code == 400
        assert "items" in response.json()["detail"]

    def test_invalid_email_rejected(self, client):
        response = _post_cart(client, email="not-an-email", items=[WIDGET])

        assert response.status_code == 400
        assert "email" in response.json()["detail"]

    def test_all_invalid_items_rejected(self, client):
        response = _post_cart(client, items=[{"id": "p1", "price": 100, "quantity": 0}])

        assert response.status_code == 400
        assert "items" in response.json()["detail"]

    def test_mixed_payload_keeps_valid_items(self, client):
        response = _post_cart(
            client,
            items=[
                WIDGET,
                {"id": "p2", "name": "Gadget", "price": 10.5, "quantity": 1},
                {"id": 42, "name": "Numbered", "price": 300, "quantity": 1},
                {"id": "p4", "name": ["not", "a", "name"], "price": 100, "quantity": 1},
                "not-an-item",
                7,
            ],
        )

        assert response.status_code == 200
        cart = response.json()["cart"]
        assert [item["product_id"] for item in cart["items"]] == ["42", "p1"]
        assert cart["total_value"] == 2300

    def test_payload_of_only_malformed_entries_rejected(self, client):
        response = _post_cart(client, items=["junk", 3, {"id": "p1", "price": "ten", "quantity": 1}])

        assert response.status_code == 400
        assert "items" in response.json()["detail"]

    def test_unknown_action_rejected(self, client):
        response = _post_cart(client, items=[WIDGET], action="delete")
        assert response.status_code == 422

    def test_recovered_action(self, client):
        _post_cart(client, items=[WIDGET])

        response = _post_cart(client, action="recovered")

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["outcome"] == "recovered"
        assert body["cart"]["status"] == "Recovered"

    def test_recovered_action_for_unknown_cart(self, client):
        response = _post_cart(client, email="ghost@example.com", action="recovered")

        body = response.json()
        assert response.status_code == 200
        assert body["success"] is False
        assert body["outcome"] == "not_found"
        assert body["cart"] is None


class TestReadEndpoints:
    def test_get_cart(self, client):
        _post_cart(client, items=[WIDGET])

        response = client.get("/carts/abandoned/jane@example.com")

        assert response.status_code == 200
        assert response.json()["cart"]["email"] == "jane@example.com"

    def test_get_unknown_cart(self, client):
        assert client.get("/carts/abandoned/ghost@example.com").status_code == 404

    def test_list_abandoned(self, client, clock):
        _post_cart(client, items=[WIDGET])
        clock.advance(hours=2)
        _post_cart(client, email="fresh@example.com", items=[GADGET])

        response = client.get("/carts/abandoned")

        carts = response.json()["carts"]
        assert [cart["email"] for cart in carts] == ["jane@example.com"]
        assert carts[0]["status"] == "Abandoned"

    def test_stats(self, client, clock):
        _post_cart(client, items=[WIDGET])
        clock.advance(hours=1, seconds=1)

        stats = client.get("/carts/abandoned/stats").json()["stats"]

        assert stats["total_tracked"] == 1
        assert stats["count_by_status"]["Abandoned"] == 1
        assert stats["total_abandoned_value"] == 2000
        assert stats["recovery_rate"] == 0.0


class TestSweepEndpoint:
    def test_sweep_now(self, client, clock):
        _post_cart(client, items=[WIDGET])
        clock.advance(hours=2)

        response = client.post("/carts/abandoned/sweep")

        assert response.status_code == 200
        assert response.json() == {"abandoned": 1, "expired": 0}

    def test_sweep_as_of_past_moment(self, client, clock):
        _post_cart(client, items=[WIDGET])
        clock.advance(days=50)

        response = client.post("/carts/abandoned/sweep", json={"as_of": "2024-07-15T00:00:00"})

        assert response.json() == {"abandoned": 1, "expired": 1}

    def test_sweep_as_of_future_moment_rejected(self, client, api_store):
        _post_cart(client, items=[WIDGET])

        response = client.post("/carts/abandoned/sweep", json={"as_of": "2024-08-01T00:00:00"})

        assert response.status_code == 400
        assert "as_of" in response.json()["detail"]
        assert api_store.history("jane@example.com")[0].status == "Active"

    def test_sweep_as_of_aware_timestamp(self, client, api_store, clock):
        _post_cart(client, items=[WIDGET])
        clock.advance(hours=3)

        client.post("/carts/abandoned/sweep", json={"as_of": datetime(2024, 6, 1, 14, 0, tzinfo=UTC).isoformat()})

        assert api_store.get("jane@example.com").status == "Abandoned"


class TestCleanupEndpoint:
    def test_cleanup_removes_old_closed_sessions(self, client, clock, api_store):
        _post_cart(client, items=[WIDGET])
        _post_cart(client, action="recovered")
        _post_cart(client, email="live@example.com", items=[GADGET])
        clock.advance(days=45)

        response = client.post("/carts/abandoned/cleanup", json={"older_than_days": 30})

        assert response.status_code == 200
        assert response.json() == {"removed": 1}
        assert api_store.get("jane@example.com") is None
        assert api_store.get("live@example.com").status == "Expired"

    def test_cleanup_defaults_to_thirty_days(self, client, clock):
        _post_cart(client, items=[WIDGET])
        _post_cart(client, action="recovered")
        clock.advance(days=10)

        assert client.post("/carts/abandoned/cleanup").json() == {"removed": 0}

    def test_negative_window_rejected(self, client):
        assert client.post("/carts/abandoned/cleanup", json={"older_than_days": -1}).status_code == 422
