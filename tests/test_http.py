"""HTTP surface: menu, session lifecycle and error mapping."""

import pytest
from fastapi.testclient import TestClient

from posflow.config import get_settings
from posflow.http import create_app, demo_app
from posflow.pricing import PricingTables

PLATE = {"kind": "Plate", "sides": ["Chow Mein"], "entrees": ["Orange Chicken", "Honey Walnut Shrimp"]}
DRINK = {"kind": "Drink", "items": ["Apple Juice"], "size": "Medium"}


@pytest.fixture
def client(catalog, orchestrator):
    app = create_app(catalog, orchestrator, PricingTables())
    with TestClient(app) as client:
        yield client


@pytest.fixture
def session_id(client):
    response = client.post("/sessions", json={"employee_id": 7})
    assert response.status_code == 201
    return response.json()["session_id"]


class TestMenu:
    def test_entrees_listed_with_premium_flag(self, client):
        response = client.get("/menu/Entree")

        assert response.status_code == 200
        by_name = {i["name"]: i for i in response.json()}
        assert by_name["Honey Walnut Shrimp"]["is_premium"] is True
        assert by_name["Orange Chicken"]["is_premium"] is False

    def test_available_only_hides_out_of_stock(self, client, catalog):
        catalog.set_in_stock("Orange Chicken", False)

        everything = {i["name"] for i in client.get("/menu/Entree").json()}
        available = {i["name"] for i in client.get("/menu/Entree?available_only=true").json()}

        assert "Orange Chicken" in everything
        assert "Orange Chicken" not in available
        assert available == everything - {"Orange Chicken"}

    def test_catalog_outage_is_503(self, client, catalog):
        catalog.fail_on("get_menu")

        response = client.get("/menu/Side")

        assert response.status_code == 503
        assert response.json()["code"] == "service_unavailable"


class TestSessionFlow:
    """Build a cart, check out, finalize."""

    def test_full_order(self, client, session_id, service):
        base = f"/sessions/{session_id}"

        assert client.post(f"{base}/lines", json=PLATE).json()["total"] == "11.30"
        assert client.post(f"{base}/lines", json=DRINK).json()["total"] == "13.60"
        removed = client.delete(f"{base}/lines/1").json()
        assert removed["total"] == "11.30"
        assert [l["display_name"] for l in removed["lines"]] == [
            "Plate (Chow Mein, Orange Chicken, Honey Walnut Shrimp)"
        ]

        assert client.post(f"{base}/checkout").json()["state"] == "AWAITING_PAYMENT"

        missing = client.post(f"{base}/finalize")
        assert missing.status_code == 422
        assert missing.json()["code"] == "missing_payment_method"

        assert client.post(f"{base}/payment", json={"method": "Card"}).json()["state"] == "AWAITING_CUSTOMER_INFO"
        assert client.post(f"{base}/customer", json={"name": "Sam"}).json()["customer_name"] == "Sam"

        receipt = client.post(f"{base}/finalize")
        assert receipt.status_code == 200
        body = receipt.json()
        assert body["transaction_id"] == 1
        assert body["total"] == "11.30"
        assert body["customer_name"] == "Sam"
        assert body["line_count"] == 1
        assert body["inventory_failures"] == []
        assert list(service.transactions) == [1]

        closed = client.get(base)
        assert closed.status_code == 404
        assert closed.json()["code"] == "session_not_found"

    def test_cancel_returns_to_building(self, client, session_id):
        base = f"/sessions/{session_id}"
        client.post(f"{base}/lines", json=PLATE)
        client.post(f"{base}/checkout")

        body = client.post(f"{base}/cancel").json()

        assert body["state"] == "BUILDING"
        assert len(body["lines"]) == 1

    def test_abandon_clears_cart(self, client, session_id):
        base = f"/sessions/{session_id}"
        client.post(f"{base}/lines", json=PLATE)

        body = client.post(f"{base}/abandon").json()

        assert body["lines"] == []
        assert client.get(base).status_code == 404

    def test_delete_closes_session(self, client, session_id):
        base = f"/sessions/{session_id}"
        client.post(f"{base}/lines", json=PLATE)

        assert client.delete(base).status_code == 204
        assert client.get(base).status_code == 404
        assert len(client.app.state.registry) == 0

    def test_price_lookup_only_for_ordered_composites(self, client, session_id, catalog):
        del catalog.prices["Bowl"]
        base = f"/sessions/{session_id}"

        plate = client.post(f"{base}/lines", json=PLATE)
        bowl = client.post(
            f"{base}/lines",
            json={"kind": "Bowl", "sides": ["Chow Mein"], "entrees": ["Orange Chicken"]},
        )

        assert plate.status_code == 200
        assert plate.json()["total"] == "11.30"
        assert bowl.status_code == 503
        assert client.get(base).json()["total"] == "11.30"


class TestErrors:
    """Domain errors map to status codes with {code, message} bodies."""

    def test_incomplete_plate(self, client, session_id):
        response = client.post(
            f"/sessions/{session_id}/lines",
            json={"kind": "Plate", "sides": ["Chow Mein"], "entrees": ["Orange Chicken"]},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "incomplete_selection"

    def test_unknown_item(self, client, session_id):
        response = client.post(
            f"/sessions/{session_id}/lines",
            json={"kind": "Bowl", "sides": ["Chow Mein"], "entrees": ["Mystery Meat"]},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_item"

    def test_a_la_carte_takes_one_item(self, client, session_id):
        response = client.post(
            f"/sessions/{session_id}/lines",
            json={"kind": "A La Carte", "items": ["Chow Mein", "Orange Chicken"], "size": "Small"},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_request"
        assert "one item" in response.json()["message"]
        assert client.get(f"/sessions/{session_id}").json()["lines"] == []

    def test_duplicate_pick_rejected(self, client, session_id):
        response = client.post(
            f"/sessions/{session_id}/lines",
            json={"kind": "Appetizer", "items": ["Chicken Egg Roll", "Chicken Egg Roll"]},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_request"

    def test_too_many_entrees_rejected(self, client, session_id):
        response = client.post(
            f"/sessions/{session_id}/lines",
            json={"kind": "Bowl", "sides": ["Chow Mein"], "entrees": ["Orange Chicken", "Beijing Beef"]},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_request"

    def test_empty_checkout(self, client, session_id):
        response = client.post(f"/sessions/{session_id}/checkout")

        assert response.status_code == 422
        assert response.json()["code"] == "empty_cart"

    def test_add_after_checkout(self, client, session_id):
        base = f"/sessions/{session_id}"
        client.post(f"{base}/lines", json=PLATE)
        client.post(f"{base}/checkout")

        response = client.post(f"{base}/lines", json=DRINK)

        assert response.status_code == 409
        assert response.json()["code"] == "invalid_transition"

    def test_unknown_session(self, client):
        response = client.post("/sessions/nope/checkout")

        assert response.status_code == 404
        assert response.json()["code"] == "session_not_found"

    def test_remove_missing_line(self, client, session_id):
        response = client.delete(f"/sessions/{session_id}/lines/3")

        assert response.status_code == 404
        assert response.json()["code"] == "line_not_found"

    def test_persistence_outage(self, client, session_id, service):
        base = f"/sessions/{session_id}"
        client.post(f"{base}/lines", json=PLATE)
        client.post(f"{base}/checkout")
        client.post(f"{base}/payment", json={"method": "Cash"})
        service.fail_on("create_transaction")

        response = client.post(f"{base}/finalize")

        assert response.status_code == 503
        assert client.get(base).json()["state"] == "AWAITING_CUSTOMER_INFO"

    def test_unvoided_transaction(self, client, session_id, service):
        base = f"/sessions/{session_id}"
        client.post(f"{base}/lines", json=PLATE)
        client.post(f"{base}/checkout")
        client.post(f"{base}/payment", json={"method": "Cash"})
        service.fail_on("create_transaction_line_item")
        service.fail_on("void_transaction")

        response = client.post(f"{base}/finalize")

        assert response.status_code == 503
        assert response.json()["code"] == "unvoided_transaction"
        assert list(service.transactions) == [1]


class TestDemoApp:
    def test_demo_app_serves_menu(self, monkeypatch):
        monkeypatch.setenv("POSFLOW_LOG_LEVEL", "WARNING")
        get_settings.cache_clear()
        try:
            with TestClient(demo_app()) as client:
                response = client.get("/menu/Drink")
        finally:
            get_settings.cache_clear()

        assert response.status_code == 200
        assert {i["name"] for i in response.json()} == {"Fountain Drink", "Bottled Water", "Apple Juice"}
