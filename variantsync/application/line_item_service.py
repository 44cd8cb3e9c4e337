"""Line item application service.

Turns a variant selection into purchase order line items (one per
combination, each with its own variant code) and removes line items once
no sync is running for their order.
"""

from collections.abc import Sequence
from decimal import Decimal

import structlog

from variantsync.application.code_allocator import ProductCodeAllocator, extract_base_code
from variantsync.application.status_tracker import SyncStatusTracker
from variantsync.catalog.attributes import AttributeCatalog, selection_from_ids
from variantsync.catalog.combinator import VariantCombinator, variant_text
from variantsync.domain.entities import PurchaseOrderLineItem
from variantsync.domain.exceptions import LineItemNotFoundError, ValidationError
from variantsync.infrastructure.repositories import LineItemRepository

logger = structlog.get_logger()


class LineItemService:
    """Creates and removes purchase order line items."""

    def __init__(
        self,
        repository: LineItemRepository,
        catalog: AttributeCatalog,
        allocator: ProductCodeAllocator,
        tracker: SyncStatusTracker,
    ) -> None:
        self.repository = repository
        self.catalog = catalog
        self.combinator = VariantCombinator(catalog)
        self.allocator = allocator
        self.tracker = tracker

    async def add_product(
        self,
        order_id: str,
        product_name: str,
        value_ids: Sequence[int] = (),
        base_product_code: str | None = None,
        purchase_price: Decimal = Decimal("0"),
        selling_price: Decimal = Decimal("0"),
        quantity: int = 1,
        images: Sequence[str] = (),
        owner_id: str | None = None,
    ) -> list[PurchaseOrderLineItem]:
        """Add a product to an order, one line per variant combination.

        Without a base code, one is proposed for ``product_name`` and
        reserved for ``owner_id``. A selection with no values yields a
        single line carrying the base code.

        Args:
            order_id: Target order.
            product_name: Name of the base product.
            value_ids: Selected attribute value ids.
            base_product_code: Code of the base product, if already chosen.
            purchase_price: Unit purchase price of every line.
            selling_price: Unit selling price of every line.
            quantity: Quantity of every line.
            images: Image URLs of the base product.
            owner_id: Editing session claiming the proposed code.

        Returns:
            The created line items in position order.

        Raises:
            ValidationError: If the product name is empty.
            UnknownAttributeValueError: If a value id is unknown.
            CodeConflictError: If the given code is reserved by another owner.
        """
        if not product_name.strip():
            raise ValidationError({"product": ["name"]})

        selection = selection_from_ids(self.catalog, value_ids)
        existing_codes = await self.repository.list_codes()

        if base_product_code:
            base_code = extract_base_code(base_product_code)
            if owner_id:
                await self.allocator.reserve(base_code, owner_id)
        else:
            base_code = await self.allocator.propose(
                product_name, scope_codes=existing_codes, owner_id=owner_id
            )

        combinations = self.combinator.combine(selection)
        position = await self.repository.next_position(order_id)
        common = {
            "order_id": order_id,
            "product_name": product_name,
            "base_product_code": base_code,
            "quantity": quantity,
            "purchase_price": purchase_price,
            "selling_price": selling_price,
            "images": list(images),
        }

        if not combinations:
            items = [
                PurchaseOrderLineItem.create(position=position, product_code=base_code, **common)
            ]
        else:
            codes = self.combinator.variant_codes(base_code, combinations, taken=existing_codes)
            items = [
                PurchaseOrderLineItem.create(
                    position=position + offset,
                    product_code=code,
                    variant_text=variant_text(combination.ordered_values),
                    selected_attribute_value_ids=combination.value_ids,
                    **common,
                )
                for offset, (combination, code) in enumerate(zip(combinations, codes))
            ]

        await self.repository.save_all(items)
        logger.info(
            "Added line items",
            order_id=order_id,
            base_product_code=base_code,
            item_count=len(items),
        )
        return items

    async def remove_item(
        self,
        order_id: str,
        position: int,
        owner_id: str | None = None,
    ) -> PurchaseOrderLineItem:
        """Remove a line item while no sync runs for its order.

        The owner's reservation on the item's code is released, and on
        the base code too once no line of that base product is left.

        Raises:
            OrderBusyError: While any item of the order is in flight.
            LineItemNotFoundError: If the item does not exist.
        """
        await self.tracker.ensure_quiescent(order_id)

        item = await self.repository.get(order_id, position)
        if item is None:
            raise LineItemNotFoundError(order_id, position)

        await self.repository.delete(order_id, position)
        if owner_id:
            codes = {item.product_code}
            remaining = await self.repository.list_for_order(order_id)
            if not any(i.base_product_code == item.base_product_code for i in remaining):
                codes.add(item.base_product_code)
            await self.allocator.release(codes, owner_id)

        logger.info(
            "Removed line item",
            order_id=order_id,
            position=position,
            product_code=item.product_code,
        )
        return item
