"""Domain exceptions.

All domain-level errors that represent business rule violations or
failures talking to the remote catalog. The HTTP layer maps each family
to a status code; application services catch remote errors at the
product-group boundary.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid sync status transition is attempted."""

    error_code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "PurchaseOrderLineItem").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(DomainError):
    """Raised when line items miss fields required for submission.

    Blocks the whole submission; nothing reaches the network.
    """

    error_code = "VALIDATION_ERROR"

    def __init__(self, problems: dict[str, list[str]]) -> None:
        """Initialize validation error.

        Args:
            problems: Mapping of line label to the names of its missing fields.
        """
        summary = "; ".join(
            f"{line}: missing {', '.join(fields)}" for line, fields in problems.items()
        )
        super().__init__(
            f"Missing required fields ({summary})",
            details={"problems": problems},
        )
        self.problems = problems


# ============================================================================
# Catalog Errors
# ============================================================================


class UnknownAttributeValueError(DomainError):
    """Raised when a value name or id is not present in the attribute catalog."""

    error_code = "UNKNOWN_ATTRIBUTE_VALUE"

    def __init__(self, value: str, attribute: str | None = None) -> None:
        where = f" in attribute '{attribute}'" if attribute else ""
        super().__init__(
            f"Unknown attribute value '{value}'{where}",
            details={"value": value, "attribute": attribute},
        )


# ============================================================================
# Code Allocation Errors
# ============================================================================


class CodeConflictError(DomainError):
    """Raised when a product code is already reserved by another owner."""

    error_code = "CODE_CONFLICT"

    def __init__(self, code: str, owner_id: str | None = None) -> None:
        """Initialize code conflict error.

        Args:
            code: The contested product code.
            owner_id: Owner currently holding the reservation, if known.
        """
        super().__init__(
            f"Product code {code} is already reserved",
            details={"code": code, "reserved_by": owner_id},
        )
        self.code = code


class NoCodeAvailableError(DomainError):
    """Raised when code allocation exhausts its retry budget."""

    error_code = "NO_CODE_AVAILABLE"

    def __init__(self, base_code: str, attempts: int) -> None:
        super().__init__(
            f"No free product code for prefix {base_code} after {attempts} attempts",
            details={"base_code": base_code, "attempts": attempts},
        )


# ============================================================================
# Line Item Errors
# ============================================================================


class LineItemNotFoundError(DomainError):
    """Raised when a line item does not exist."""

    error_code = "LINE_ITEM_NOT_FOUND"

    def __init__(self, order_id: str, position: int) -> None:
        super().__init__(
            f"Line item {position} not found in order {order_id}",
            details={"order_id": order_id, "position": position},
        )


class OrderBusyError(DomainError):
    """Raised when a destructive action targets an order with items in flight."""

    error_code = "ORDER_BUSY"

    def __init__(self, order_id: str, processing_count: int) -> None:
        super().__init__(
            f"Order {order_id} has {processing_count} item(s) being synchronized",
            details={"order_id": order_id, "processing_count": processing_count},
        )


# ============================================================================
# Remote Catalog Errors
# ============================================================================


class RemoteCatalogError(DomainError):
    """Base class for failures reported while talking to the remote catalog."""

    error_code = "REMOTE_CATALOG_ERROR"


class RemoteTransportError(RemoteCatalogError):
    """Network or HTTP failure. The caller may retry the whole group later."""

    error_code = "REMOTE_TRANSPORT_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


class RemoteResponseError(RemoteTransportError):
    """The remote answered successfully but the body is unusable."""

    error_code = "REMOTE_RESPONSE_ERROR"


class RemoteDuplicateError(RemoteCatalogError):
    """The product code already exists remotely. Never retried automatically."""

    error_code = "REMOTE_DUPLICATE"

    def __init__(
        self,
        code: str,
        remote_id: int | None = None,
        remote_name: str | None = None,
    ) -> None:
        """Initialize duplicate error.

        Args:
            code: Conflicting product code.
            remote_id: Identifier of the existing remote product.
            remote_name: Name of the existing remote product.
        """
        entity = f" (remote #{remote_id} '{remote_name}')" if remote_id else ""
        super().__init__(
            f"Product code {code} already exists in the remote catalog{entity}",
            details={"code": code, "remote_id": remote_id, "remote_name": remote_name},
        )
        self.code = code
        self.remote_id = remote_id


# ============================================================================
# Reconciliation
# ============================================================================


class ReconciliationMismatch(DomainError):
    """Local and remote variants do not fully correspond.

    Attached to a group outcome as a warning; it never fails the group.
    """

    error_code = "RECONCILIATION_MISMATCH"

    def __init__(self, base_code: str, missing: list[str], unexpected: list[str]) -> None:
        parts = []
        if missing:
            parts.append(f"missing: {', '.join(missing)}")
        if unexpected:
            parts.append(f"unexpected: {', '.join(unexpected)}")
        super().__init__(
            f"Variants of {base_code} only partially matched ({'; '.join(parts)})",
            details={"base_code": base_code, "missing": missing, "unexpected": unexpected},
        )
        self.missing = missing
        self.unexpected = unexpected
