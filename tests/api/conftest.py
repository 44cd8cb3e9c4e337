"""Shared fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from variantsync.api.dependencies import (
    get_catalog,
    get_code_allocator,
    get_line_item_repository,
    get_orchestrator,
    get_reservation_store,
    reset_dependencies,
)
from variantsync.application.sync_orchestrator import RemoteCatalogSyncOrchestrator
from variantsync.infrastructure.config import settings
from variantsync.main import app


@pytest.fixture(autouse=True)
def fresh_dependencies():
    """Give every test its own repositories and reservations."""
    reset_dependencies()
    yield
    app.dependency_overrides.clear()
    reset_dependencies()


@pytest.fixture
def fake_remote(remote):
    """Route sync calls to the in-memory remote, without pauses."""
    app.dependency_overrides[get_orchestrator] = lambda: RemoteCatalogSyncOrchestrator(
        remote,
        get_line_item_repository(),
        get_catalog(),
        inter_call_delay=0,
        allocator=get_code_allocator(get_reservation_store()),
    )
    return remote


@pytest.fixture
def client() -> TestClient:
    """Create test client without authentication."""
    return TestClient(app)


@pytest.fixture
def auth_client() -> TestClient:
    """Create test client with valid API key authentication."""
    return TestClient(
        app,
        headers={"Authorization": f"Bearer {settings.api_key}"},
    )
