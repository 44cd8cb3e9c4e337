"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from variantsync.application.code_allocator import (
    InMemoryReservationStore,
    ProductCodeAllocator,
    derive_base_code,
)
from variantsync.application.line_item_service import LineItemService
from variantsync.application.status_tracker import SyncProgress, SyncStatusTracker
from variantsync.application.sync_orchestrator import (
    BatchResult,
    GroupOutcome,
    RemoteCatalogSyncOrchestrator,
    SyncEventHandler,
    SyncJob,
)

__all__ = [
    "BatchResult",
    "GroupOutcome",
    "InMemoryReservationStore",
    "LineItemService",
    "ProductCodeAllocator",
    "RemoteCatalogSyncOrchestrator",
    "SyncEventHandler",
    "SyncJob",
    "SyncProgress",
    "SyncStatusTracker",
    "derive_base_code",
]
