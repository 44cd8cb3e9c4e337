"""Tests for order line item and sync endpoints."""

from fastapi.testclient import TestClient

from variantsync.api.dependencies import get_line_item_repository
from variantsync.domain.exceptions import RemoteTransportError
from variantsync.domain.state_machines import SyncStatus

PRODUCT = {
    "product_name": "Áo thun",
    "value_ids": [8, 17, 1, 2, 3],
    "purchase_price": "100",
    "selling_price": "150",
    "images": ["https://img.example/1.jpg"],
    "owner_id": "s1",
}


def _add(client: TestClient, order_id: str = "po-1", **overrides) -> dict:
    response = client.post(f"/orders/{order_id}/items", json={**PRODUCT, **overrides})
    assert response.status_code == 201
    return response.json()


class TestAddItems:
    """Tests for POST /orders/{order_id}/items."""

    def test_adds_one_line_per_variant(self, auth_client: TestClient) -> None:
        data = _add(auth_client)

        items = data["items"]
        assert len(items) == 6
        assert items[0]["product_code"] == "N1SR"
        assert items[0]["base_product_code"] == "N1"
        assert items[0]["variant_text"] == "S, Red"
        assert items[0]["sync_status"] == "pending"

    def test_reserved_base_code_conflicts_for_other_session(
        self, auth_client: TestClient
    ) -> None:
        _add(auth_client)
        response = auth_client.post(
            "/orders/po-2/items",
            json={**PRODUCT, "base_product_code": "N1", "owner_id": "s2"},
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "CODE_CONFLICT"

    def test_request_validation(self, auth_client: TestClient) -> None:
        response = auth_client.post("/orders/po-1/items", json={"product_name": ""})
        assert response.status_code == 422


class TestSyncStatus:
    """Tests for GET /orders/{order_id}/sync-status."""

    def test_counts(self, auth_client: TestClient) -> None:
        _add(auth_client)

        data = auth_client.get("/orders/po-1/sync-status").json()

        assert data["total_count"] == 6
        assert data["pending_count"] == 6
        assert data["processing_count"] == 0
        assert data["destructive_actions_allowed"] is True


class TestSync:
    """Tests for POST /orders/{order_id}/sync and /match."""

    def test_sync_creates_products(self, auth_client: TestClient, fake_remote) -> None:
        _add(auth_client)
        _add(auth_client, product_name="Túi xách", value_ids=[], owner_id=None)

        response = auth_client.post("/orders/po-1/sync")

        assert response.status_code == 200
        data = response.json()
        assert data["item_count"] == 7
        assert (data["succeeded_count"], data["failed_count"]) == (2, 0)
        assert [g["base_product_code"] for g in data["groups"]] == ["N1", "P1"]
        assert data["groups"][0]["matched_count"] == 6
        status = auth_client.get("/orders/po-1/sync-status").json()
        assert status["success_count"] == 7

    def test_failed_group_is_reported(self, auth_client: TestClient, fake_remote) -> None:
        _add(auth_client)
        fake_remote.create_errors["N1"] = RemoteTransportError("connection reset")

        data = auth_client.post("/orders/po-1/sync").json()

        assert data["failed_count"] == 1
        assert data["groups"][0]["error_code"] == "REMOTE_TRANSPORT_ERROR"
        status = auth_client.get("/orders/po-1/sync-status").json()
        assert status["failed_count"] == 6

    def test_missing_fields_block_sync(self, auth_client: TestClient, fake_remote) -> None:
        _add(auth_client, images=[])

        response = auth_client.post("/orders/po-1/sync")

        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "VALIDATION_ERROR"
        assert data["details"][0] == {"field": "line 1 (N1SR)", "message": "missing images"}
        assert fake_remote.lookups == []

    def test_match_pending(self, auth_client: TestClient, fake_remote) -> None:
        _add(auth_client)
        fake_remote.drop_codes = {"N1LB"}
        auth_client.post("/orders/po-1/sync")

        data = auth_client.post("/orders/po-1/match").json()

        assert data["matched_count"] == 0
        assert data["unmatched"] == ["line 6 (N1LB)"]

    def test_sync_releases_the_sessions_reservations(
        self, auth_client: TestClient, fake_remote
    ) -> None:
        _add(auth_client)

        auth_client.post("/orders/po-1/sync", params={"owner_id": "s1"})

        response = auth_client.post("/codes/reserve", json={"code": "N1", "owner_id": "s2"})
        assert response.status_code == 200

    def test_sync_without_owner_keeps_reservations(
        self, auth_client: TestClient, fake_remote
    ) -> None:
        _add(auth_client)

        auth_client.post("/orders/po-1/sync")

        response = auth_client.post("/codes/reserve", json={"code": "N1", "owner_id": "s2"})
        assert response.status_code == 409


class TestRemoveItem:
    """Tests for DELETE /orders/{order_id}/items/{position}."""

    def test_remove(self, auth_client: TestClient) -> None:
        _add(auth_client)

        response = auth_client.delete("/orders/po-1/items/6", params={"owner_id": "s1"})

        assert response.status_code == 200
        assert response.json()["product_code"] == "N1LB"
        status = auth_client.get("/orders/po-1/sync-status").json()
        assert status["total_count"] == 5

    def test_remove_missing(self, auth_client: TestClient) -> None:
        response = auth_client.delete("/orders/po-1/items/9")
        assert response.status_code == 404
        assert response.json()["error_code"] == "LINE_ITEM_NOT_FOUND"

    def test_remove_refused_while_syncing(self, auth_client: TestClient) -> None:
        _add(auth_client)
        repository = get_line_item_repository()
        repository._items[("po-1", 2)].sync_status = SyncStatus.PROCESSING

        response = auth_client.delete("/orders/po-1/items/1")

        assert response.status_code == 409
        assert response.json()["error_code"] == "ORDER_BUSY"
        status = auth_client.get("/orders/po-1/sync-status").json()
        assert status["destructive_actions_allowed"] is False
