"""Domain layer - Entities, value objects, sync state machine, exceptions.

This module exports the core domain building blocks:

- **Value Objects**: attribute definitions/values, selections, combinations
- **Entities**: purchase order line items, code reservations
- **State Machine**: SyncStatus with its transition table
- **Exceptions**: validation, allocation and remote catalog errors

Example usage:
    from variantsync.domain import PurchaseOrderLineItem, SyncStatus

    item = PurchaseOrderLineItem.create(
        order_id="po-1",
        position=1,
        product_code="N12SD",
        base_product_code="N12",
        product_name="AO THUN",
        variant_text="S, Black",
    )
    assert item.sync_status is SyncStatus.PENDING
"""

from variantsync.domain.base import Entity, ValueObject
from variantsync.domain.entities import CodeReservation, PurchaseOrderLineItem
from variantsync.domain.exceptions import (
    CodeConflictError,
    DomainError,
    InvalidStateTransitionError,
    LineItemNotFoundError,
    NoCodeAvailableError,
    OrderBusyError,
    ReconciliationMismatch,
    RemoteCatalogError,
    RemoteDuplicateError,
    RemoteResponseError,
    RemoteTransportError,
    UnknownAttributeValueError,
    ValidationError,
)
from variantsync.domain.state_machines import (
    SyncStatus,
    settled_status,
    validate_sync_transition,
)
from variantsync.domain.value_objects import (
    AttributeDefinition,
    AttributeValue,
    SelectionEntry,
    VariantCombination,
    VariantSelection,
)

__all__ = [
    # Base
    "Entity",
    "ValueObject",
    # Value objects
    "AttributeDefinition",
    "AttributeValue",
    "SelectionEntry",
    "VariantCombination",
    "VariantSelection",
    # Entities
    "CodeReservation",
    "PurchaseOrderLineItem",
    # State machine
    "SyncStatus",
    "settled_status",
    "validate_sync_transition",
    # Exceptions
    "CodeConflictError",
    "DomainError",
    "InvalidStateTransitionError",
    "LineItemNotFoundError",
    "NoCodeAvailableError",
    "OrderBusyError",
    "ReconciliationMismatch",
    "RemoteCatalogError",
    "RemoteDuplicateError",
    "RemoteResponseError",
    "RemoteTransportError",
    "UnknownAttributeValueError",
    "ValidationError",
]
