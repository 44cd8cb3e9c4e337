"""Repositories for line items and code reservations.

Each repository has an in-memory implementation (default, used by tests
and single-process runs) and a SQLAlchemy implementation. SQL
repositories open one short session per operation through a session
factory, since sync jobs and status polls outlive a single request.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from variantsync.domain.entities import CodeReservation, PurchaseOrderLineItem
from variantsync.domain.exceptions import CodeConflictError
from variantsync.domain.state_machines import SyncStatus
from variantsync.infrastructure.models import (
    ProductCodeReservationModel,
    PurchaseOrderItemModel,
)

logger = structlog.get_logger()


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# ============================================================================
# Line Items
# ============================================================================


def is_claimable(item: PurchaseOrderLineItem) -> bool:
    """True if a sync job may pick the item up for creation."""
    return (
        item.sync_status.is_submittable()
        and item.remote_product_id is None
        and item.remote_template_id is None
    )



class LineItemRepository(Protocol):
    """Storage of purchase order line items keyed by (order_id, position)."""

    async def get(self, order_id: str, position: int) -> PurchaseOrderLineItem | None:
        ...

    async def list_for_order(self, order_id: str) -> list[PurchaseOrderLineItem]:
        """Items of an order in position order."""
        ...

    async def save(self, item: PurchaseOrderLineItem) -> PurchaseOrderLineItem:
        """Insert or update an item."""
        ...

    async def save_all(self, items: Iterable[PurchaseOrderLineItem]) -> None:
        ...

    async def delete(self, order_id: str, position: int) -> bool:
        """Remove an item; returns False when it did not exist."""
        ...

    async def next_position(self, order_id: str) -> int:
        """First free position after the order's last item."""
        ...

    async def list_codes(self) -> set[str]:
        """Every product and base product code stored on any line item."""
        ...

    async def claim_for_sync(
        self, items: Iterable[PurchaseOrderLineItem]
    ) -> list[PurchaseOrderLineItem]:
        """Move items to PROCESSING unless another job got there first.

        Each item is claimed only while its stored row is still
        submittable and has never been created remotely. Claimed items are
        transitioned in place and returned; the others are left untouched.
        """
        ...


class InMemoryLineItemRepository:
    """In-memory repository for line items."""

    def __init__(self) -> None:
        self._items: dict[tuple[str, int], PurchaseOrderLineItem] = {}

    async def get(self, order_id: str, position: int) -> PurchaseOrderLineItem | None:
        return self._items.get((order_id, position))

    async def list_for_order(self, order_id: str) -> list[PurchaseOrderLineItem]:
        items = [item for (oid, _), item in self._items.items() if oid == order_id]
        return sorted(items, key=lambda i: i.position)

    async def save(self, item: PurchaseOrderLineItem) -> PurchaseOrderLineItem:
        self._items[(item.order_id, item.position)] = item
        return item

    async def save_all(self, items: Iterable[PurchaseOrderLineItem]) -> None:
        for item in items:
            await self.save(item)

    async def delete(self, order_id: str, position: int) -> bool:
        return self._items.pop((order_id, position), None) is not None

    async def next_position(self, order_id: str) -> int:
        positions = [pos for (oid, pos) in self._items if oid == order_id]
        return max(positions, default=0) + 1

    async def list_codes(self) -> set[str]:
        codes = set()
        for item in self._items.values():
            codes.add(item.product_code)
            codes.add(item.base_product_code)
        return codes

    async def claim_for_sync(
        self, items: Iterable[PurchaseOrderLineItem]
    ) -> list[PurchaseOrderLineItem]:
        claimed = []
        for item in items:
            key = (item.order_id, item.position)
            stored = self._items.get(key)
            if stored is None or stored.id != item.id or not is_claimable(stored):
                continue
            item.start_processing()
            self._items[key] = item
            claimed.append(item)
        return claimed


def _item_from_row(row: PurchaseOrderItemModel) -> PurchaseOrderLineItem:
    return PurchaseOrderLineItem(
        id=row.id,
        order_id=row.order_id,
        position=row.position,
        product_code=row.product_code,
        base_product_code=row.base_product_code,
        product_name=row.product_name,
        variant_text=row.variant_text or "",
        quantity=row.quantity,
        purchase_price=Decimal(row.purchase_price or 0),
        selling_price=Decimal(row.selling_price or 0),
        images=list(row.images or []),
        selected_attribute_value_ids=list(row.selected_attribute_value_ids or []),
        remote_product_id=row.remote_product_id,
        remote_template_id=row.remote_template_id,
        sync_status=SyncStatus(row.sync_status),
        sync_error=row.sync_error,
        sync_started_at=_as_utc(row.sync_started_at),
        sync_completed_at=_as_utc(row.sync_completed_at),
    )


def _copy_to_row(item: PurchaseOrderLineItem, row: PurchaseOrderItemModel) -> None:
    row.order_id = item.order_id
    row.position = item.position
    row.product_code = item.product_code
    row.base_product_code = item.base_product_code
    row.product_name = item.product_name
    row.variant_text = item.variant_text
    row.quantity = item.quantity
    row.purchase_price = item.purchase_price
    row.selling_price = item.selling_price
    row.images = list(item.images)
    row.selected_attribute_value_ids = list(item.selected_attribute_value_ids)
    row.remote_product_id = item.remote_product_id
    row.remote_template_id = item.remote_template_id
    row.sync_status = item.sync_status.value
    row.sync_error = item.sync_error
    row.sync_started_at = item.sync_started_at
    row.sync_completed_at = item.sync_completed_at


class SqlLineItemRepository:
    """Line item repository backed by the ``purchase_order_items`` table.

    Example usage:
        repo = SqlLineItemRepository(get_session_factory())
        items = await repo.list_for_order("po-1")
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize repository.

        Args:
            session_factory: Factory for short-lived sessions.
        """
        self.session_factory = session_factory

    async def get(self, order_id: str, position: int) -> PurchaseOrderLineItem | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PurchaseOrderItemModel).where(
                    PurchaseOrderItemModel.order_id == order_id,
                    PurchaseOrderItemModel.position == position,
                )
            )
            row = result.scalar_one_or_none()
            return _item_from_row(row) if row else None

    async def list_for_order(self, order_id: str) -> list[PurchaseOrderLineItem]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PurchaseOrderItemModel)
                .where(PurchaseOrderItemModel.order_id == order_id)
                .order_by(PurchaseOrderItemModel.position)
            )
            return [_item_from_row(row) for row in result.scalars()]

    async def save(self, item: PurchaseOrderLineItem) -> PurchaseOrderLineItem:
        await self.save_all([item])
        return item

    async def save_all(self, items: Iterable[PurchaseOrderLineItem]) -> None:
        async with self.session_factory() as session, session.begin():
            for item in items:
                row = await session.get(PurchaseOrderItemModel, item.id)
                if row is None:
                    row = PurchaseOrderItemModel(id=item.id)
                    session.add(row)
                _copy_to_row(item, row)

    async def delete(self, order_id: str, position: int) -> bool:
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                delete(PurchaseOrderItemModel).where(
                    PurchaseOrderItemModel.order_id == order_id,
                    PurchaseOrderItemModel.position == position,
                )
            )
            return result.rowcount > 0

    async def next_position(self, order_id: str) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.max(PurchaseOrderItemModel.position)).where(
                    PurchaseOrderItemModel.order_id == order_id
                )
            )
            return (result.scalar() or 0) + 1

    async def list_codes(self) -> set[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(
                    PurchaseOrderItemModel.product_code,
                    PurchaseOrderItemModel.base_product_code,
                )
            )
            return {code for row in result for code in row}

    async def claim_for_sync(
        self, items: Iterable[PurchaseOrderLineItem]
    ) -> list[PurchaseOrderLineItem]:
        model = PurchaseOrderItemModel
        started_at = datetime.now(timezone.utc)
        claimed = []
        async with self.session_factory() as session, session.begin():
            for item in items:
                if not is_claimable(item):
                    continue
                result = await session.execute(
                    update(model)
                    .where(
                        model.id == item.id,
                        model.sync_status == item.sync_status.value,
                        model.remote_product_id.is_(None),
                        model.remote_template_id.is_(None),
                    )
                    .values(
                        sync_status=SyncStatus.PROCESSING.value,
                        sync_error=None,
                        sync_started_at=started_at,
                        sync_completed_at=None,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount:
                    claimed.append(item)

        for item in claimed:
            item.start_processing()
            item.sync_started_at = started_at
        return claimed


# ============================================================================
# Code Reservations
# ============================================================================


class SqlReservationStore:
    """Reservation store backed by ``product_code_reservations``.

    Taking over a row is a conditional ``UPDATE`` that only matches when
    the row is the caller's own or has expired, so two sessions racing
    for the same expired code cannot both win. A missing row is inserted
    and the primary key on the code decides concurrent inserts.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def reserve(
        self, code: str, owner_id: str, expires_at: datetime, now: datetime
    ) -> CodeReservation:
        table = ProductCodeReservationModel
        try:
            async with self.session_factory() as session, session.begin():
                result = await session.execute(
                    update(table)
                    .where(
                        table.product_code == code,
                        or_(table.owner_id == owner_id, table.expires_at <= now),
                    )
                    .values(owner_id=owner_id, expires_at=expires_at)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    holder = await session.get(table, code)
                    if holder is not None:
                        raise CodeConflictError(code, holder.owner_id)
                    session.add(
                        table(product_code=code, owner_id=owner_id, expires_at=expires_at)
                    )
        except IntegrityError as e:
            logger.info("Reservation insert lost a race", code=code, owner_id=owner_id)
            raise CodeConflictError(code) from e

        return CodeReservation(code=code, owner_id=owner_id, expires_at=expires_at)

    async def release(self, codes: Iterable[str], owner_id: str) -> int:
        codes = list(codes)
        if not codes:
            return 0
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                delete(ProductCodeReservationModel).where(
                    ProductCodeReservationModel.product_code.in_(codes),
                    ProductCodeReservationModel.owner_id == owner_id,
                )
            )
            return result.rowcount

    async def list_active(self, prefix: str, now: datetime) -> list[CodeReservation]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ProductCodeReservationModel).where(
                    ProductCodeReservationModel.product_code.startswith(prefix, autoescape=True)
                )
            )
            reservations = [
                CodeReservation(
                    code=row.product_code,
                    owner_id=row.owner_id,
                    expires_at=_as_utc(row.expires_at),
                )
                for row in result.scalars()
            ]
        return [r for r in reservations if not r.is_expired(now)]
