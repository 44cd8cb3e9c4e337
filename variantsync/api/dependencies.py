"""Dependency wiring for the API.

Long-lived collaborators (catalog snapshot, repositories, reservation
store, remote client, status tracker) are process singletons; storage
is chosen by ``settings.storage_backend``. Services are built per request on top of
them, so tests can override any single provider.
"""

from typing import Annotated

from fastapi import Depends

from variantsync.application.code_allocator import (
    InMemoryReservationStore,
    ProductCodeAllocator,
    ReservationStore,
)
from variantsync.application.line_item_service import LineItemService
from variantsync.application.status_tracker import SyncStatusTracker
from variantsync.application.sync_orchestrator import (
    RemoteCatalog,
    RemoteCatalogSyncOrchestrator,
)
from variantsync.catalog.attributes import InMemoryAttributeCatalog, default_catalog
from variantsync.infrastructure.config import settings
from variantsync.infrastructure.database import get_session_factory
from variantsync.infrastructure.remote_catalog_client import RemoteCatalogClient
from variantsync.infrastructure.repositories import (
    InMemoryLineItemRepository,
    LineItemRepository,
    SqlLineItemRepository,
    SqlReservationStore,
)

_catalog: InMemoryAttributeCatalog | None = None
_line_items: LineItemRepository | None = None
_reservations: ReservationStore | None = None
_remote_client: RemoteCatalogClient | None = None
_tracker: SyncStatusTracker | None = None


def get_catalog() -> InMemoryAttributeCatalog:
    """Get attribute catalog singleton."""
    global _catalog
    if _catalog is None:
        _catalog = default_catalog()
    return _catalog


def get_line_item_repository() -> LineItemRepository:
    """Get line item repository singleton."""
    global _line_items
    if _line_items is None:
        if settings.storage_backend == "sql":
            _line_items = SqlLineItemRepository(get_session_factory())
        else:
            _line_items = InMemoryLineItemRepository()
    return _line_items


def get_reservation_store() -> ReservationStore:
    """Get reservation store singleton."""
    global _reservations
    if _reservations is None:
        if settings.storage_backend == "sql":
            _reservations = SqlReservationStore(get_session_factory())
        else:
            _reservations = InMemoryReservationStore()
    return _reservations


def get_remote_client() -> RemoteCatalog:
    """Get remote catalog client singleton."""
    global _remote_client
    if _remote_client is None:
        _remote_client = RemoteCatalogClient()
    return _remote_client


def get_code_allocator(
    store: Annotated[ReservationStore, Depends(get_reservation_store)],
) -> ProductCodeAllocator:
    return ProductCodeAllocator(store)


def get_tracker() -> SyncStatusTracker:
    """Get sync status tracker singleton.

    Shared so background watches outlive the request that started them
    and are cancelled on shutdown.
    """
    global _tracker
    if _tracker is None:
        _tracker = SyncStatusTracker(get_line_item_repository())
    return _tracker


def get_orchestrator(
    remote: Annotated[RemoteCatalog, Depends(get_remote_client)],
    repository: Annotated[LineItemRepository, Depends(get_line_item_repository)],
    catalog: Annotated[InMemoryAttributeCatalog, Depends(get_catalog)],
    allocator: Annotated[ProductCodeAllocator, Depends(get_code_allocator)],
) -> RemoteCatalogSyncOrchestrator:
    return RemoteCatalogSyncOrchestrator(remote, repository, catalog, allocator=allocator)


def get_line_item_service(
    repository: Annotated[LineItemRepository, Depends(get_line_item_repository)],
    catalog: Annotated[InMemoryAttributeCatalog, Depends(get_catalog)],
    allocator: Annotated[ProductCodeAllocator, Depends(get_code_allocator)],
    tracker: Annotated[SyncStatusTracker, Depends(get_tracker)],
) -> LineItemService:
    return LineItemService(repository, catalog, allocator, tracker)


async def close_dependencies() -> None:
    """Cancel background watches and release network resources."""
    if _tracker is not None:
        await _tracker.close()
    if _remote_client is not None:
        await _remote_client.close()


def reset_dependencies() -> None:
    """Reset every singleton (for testing)."""
    global _catalog, _line_items, _reservations, _remote_client, _tracker
    _catalog = None
    _line_items = None
    _reservations = None
    _remote_client = None
    _tracker = None
