"""Tests for API middleware and health endpoints."""

from fastapi.testclient import TestClient


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["service"] == "variantsync"

    def test_ready_with_memory_storage(self, client: TestClient) -> None:
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "storage": "memory"}


class TestRequestIdMiddleware:
    """Tests for request ID correlation middleware."""

    def test_generates_request_id_if_not_provided(self, client: TestClient) -> None:
        """Should generate a UUID request ID."""
        response = client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 36

    def test_uses_provided_request_id(self, client: TestClient) -> None:
        response = client.get("/health", headers={"X-Request-ID": "req-12345"})
        assert response.headers["X-Request-ID"] == "req-12345"


class TestApiKeyMiddleware:
    """Tests for API key authentication middleware."""

    def test_protected_endpoints_require_auth(self, client: TestClient) -> None:
        response = client.post("/variants/combine", json={"value_ids": [1]})
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_invalid_scheme(self, client: TestClient) -> None:
        response = client.post(
            "/variants/combine",
            json={"value_ids": [1]},
            headers={"Authorization": "Basic abc"},
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_invalid_api_key(self, client: TestClient) -> None:
        response = client.post(
            "/variants/combine",
            json={"value_ids": [1]},
            headers={"Authorization": "Bearer wrong-key"},
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "INVALID_API_KEY"

    def test_valid_api_key(self, auth_client: TestClient) -> None:
        response = auth_client.post("/variants/combine", json={"value_ids": [1]})
        assert response.status_code == 200
