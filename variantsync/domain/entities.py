"""Domain entities.

Purchase order line items carry the sync state of the product they
describe. Code reservations are short-lived claims shared across editing
sessions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Self
from uuid import uuid4

from variantsync.domain.base import Entity
from variantsync.domain.exceptions import DomainError
from variantsync.domain.state_machines import (
    SyncStatus,
    settled_status,
    validate_sync_transition,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Purchase Order Line Item
# ============================================================================


@dataclass(eq=False)
class PurchaseOrderLineItem(Entity[str]):
    """A line of a purchase order.

    Line items are keyed by ``(order_id, position)``. Items generated from
    one base product share ``base_product_code`` and are uploaded to the
    remote catalog together.
    """

    order_id: str
    position: int
    product_code: str
    base_product_code: str
    product_name: str
    variant_text: str = ""
    quantity: int = 1
    purchase_price: Decimal = Decimal("0")
    selling_price: Decimal = Decimal("0")
    images: list[str] = field(default_factory=list)
    selected_attribute_value_ids: list[int] = field(default_factory=list)
    remote_product_id: int | None = None
    remote_template_id: int | None = None
    sync_status: SyncStatus = SyncStatus.PENDING_NO_MATCH
    sync_error: str | None = None
    sync_started_at: datetime | None = None
    sync_completed_at: datetime | None = None

    @classmethod
    def create(
        cls,
        order_id: str,
        position: int,
        product_code: str,
        product_name: str,
        base_product_code: str | None = None,
        variant_text: str = "",
        quantity: int = 1,
        purchase_price: Decimal = Decimal("0"),
        selling_price: Decimal = Decimal("0"),
        images: list[str] | None = None,
        selected_attribute_value_ids: list[int] | None = None,
        remote_product_id: int | None = None,
    ) -> Self:
        """Create a line item with its initial sync status.

        Items picked from the catalog already carry a remote id and start
        as SUCCESS. New items start as PENDING or PENDING_NO_MATCH
        depending on whether they describe a variant.
        """
        return cls(
            id=str(uuid4()),
            order_id=order_id,
            position=position,
            product_code=product_code.strip().upper(),
            base_product_code=(base_product_code or product_code).strip().upper(),
            product_name=product_name.strip(),
            variant_text=variant_text.strip(),
            quantity=quantity,
            purchase_price=purchase_price,
            selling_price=selling_price,
            images=list(images or []),
            selected_attribute_value_ids=list(selected_attribute_value_ids or []),
            remote_product_id=remote_product_id,
            sync_status=settled_status(remote_product_id, variant_text),
        )

    @property
    def label(self) -> str:
        """Short human label used in validation reports."""
        return f"line {self.position} ({self.product_code or 'no code'})"

    def missing_fields(self) -> list[str]:
        """Names of the fields that must be filled before submission."""
        missing = []
        if not self.product_name.strip():
            missing.append("name")
        if not self.product_code.strip():
            missing.append("code")
        if self.purchase_price is None or self.purchase_price <= 0:
            missing.append("price")
        if not self.images:
            missing.append("images")
        return missing

    # ------------------------------------------------------------------
    # Sync transitions
    # ------------------------------------------------------------------

    def transition_to(self, target: SyncStatus) -> None:
        """Move to ``target``, enforcing the transition table.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed.
            DomainError: If SUCCESS is requested without a remote id.
        """
        validate_sync_transition(self.id, self.sync_status, target)
        if target is SyncStatus.SUCCESS and self.remote_product_id is None:
            raise DomainError(
                f"Line item {self.id} cannot succeed without a remote product id",
                details={"line_item_id": self.id},
            )
        self.sync_status = target

    def start_processing(self) -> None:
        self.transition_to(SyncStatus.PROCESSING)
        self.sync_started_at = _utcnow()
        self.sync_completed_at = None
        self.sync_error = None

    def settle(self, remote_product_id: int | None, remote_template_id: int | None) -> None:
        """Record the outcome of a successful group upload."""
        if remote_product_id is not None:
            self.remote_product_id = remote_product_id
        self.remote_template_id = remote_template_id
        self.transition_to(settled_status(self.remote_product_id, self.variant_text))
        self.sync_completed_at = _utcnow()

    def mark_matched(self, remote_product_id: int, remote_template_id: int | None = None) -> None:
        """Record a remote id found during the later matching phase."""
        self.remote_product_id = remote_product_id
        if remote_template_id is not None:
            self.remote_template_id = remote_template_id
        self.transition_to(SyncStatus.SUCCESS)
        self.sync_completed_at = _utcnow()
        self.sync_error = None

    def mark_failed(self, error: str) -> None:
        self.transition_to(SyncStatus.FAILED)
        self.sync_error = error
        self.sync_completed_at = _utcnow()


# ============================================================================
# Code Reservation
# ============================================================================


@dataclass
class CodeReservation:
    """A time-bounded claim on a not yet committed product code."""

    code: str
    owner_id: str
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or _utcnow()) >= self.expires_at

    def blocks(self, owner_id: str, now: datetime | None = None) -> bool:
        """True if the reservation prevents ``owner_id`` from using the code."""
        return self.owner_id != owner_id and not self.is_expired(now)
