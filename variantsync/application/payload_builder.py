"""Product groups and their creation payloads.

A product group is everything created in the remote catalog with one
call: a base product plus its variants. Groups are built from purchase
order line items sharing a base product code and mapped to the typed
remote DTOs here.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from variantsync.catalog.attributes import AttributeCatalog
from variantsync.catalog.combinator import variant_name
from variantsync.domain.entities import PurchaseOrderLineItem
from variantsync.domain.exceptions import UnknownAttributeValueError
from variantsync.domain.value_objects import AttributeDefinition, AttributeValue
from variantsync.infrastructure.remote_schemas import (
    RemoteAttribute,
    RemoteAttributeLine,
    RemoteAttributeValue,
    RemoteTemplatePayload,
    RemoteVariantPayload,
)


@dataclass(frozen=True)
class AttributeLine:
    """Values of one attribute used across a group, in selection order."""

    attribute: AttributeDefinition
    values: tuple[AttributeValue, ...]


@dataclass(frozen=True)
class VariantStub:
    """Local description of one variant to be created."""

    code: str | None
    name: str
    values: tuple[AttributeValue, ...] = ()
    line_item_id: str | None = None

    @property
    def label(self) -> str:
        """``"CODE (Name)"`` as used in reconciliation reports."""
        return f"{self.code or '?'} ({self.name})"


@dataclass
class ProductGroup:
    """A base product and the variants created together with it."""

    base_product_code: str
    name: str
    purchase_price: Decimal
    selling_price: Decimal
    images: list[str] = field(default_factory=list)
    attribute_lines: list[AttributeLine] = field(default_factory=list)
    variant_stubs: list[VariantStub] = field(default_factory=list)

    @property
    def line_item_ids(self) -> list[str]:
        return [stub.line_item_id for stub in self.variant_stubs if stub.line_item_id]


# ============================================================================
# Grouping
# ============================================================================


def group_line_items(
    items: Sequence[PurchaseOrderLineItem],
    catalog: AttributeCatalog,
) -> list[ProductGroup]:
    """Group line items by base product code.

    Groups appear in the position order of their first item; variants
    keep position order inside a group. The first item of a group
    provides name, prices and images of the base product.

    Raises:
        UnknownAttributeValueError: If an item references an unknown value.
    """
    buckets: dict[str, list[PurchaseOrderLineItem]] = {}
    for item in sorted(items, key=lambda i: i.position):
        buckets.setdefault(item.base_product_code, []).append(item)

    return [build_group(code, members, catalog) for code, members in buckets.items()]


def build_group(
    base_product_code: str,
    items: Sequence[PurchaseOrderLineItem],
    catalog: AttributeCatalog,
) -> ProductGroup:
    """Build the product group for the line items of one base product."""
    head = items[0]
    used: dict[int, list[AttributeValue]] = {}
    stubs = []

    for item in items:
        values = tuple(catalog.get_value(vid) for vid in item.selected_attribute_value_ids)
        for value in values:
            bucket = used.setdefault(value.attribute_id, [])
            if value not in bucket:
                bucket.append(value)
        stubs.append(
            VariantStub(
                code=item.product_code or None,
                name=variant_name(head.product_name, values) if values else _item_name(item),
                values=values,
                line_item_id=item.id,
            )
        )

    lines = [
        AttributeLine(attribute=catalog.get_attribute(attribute_id), values=tuple(values))
        for attribute_id, values in used.items()
    ]
    lines.sort(key=lambda line: line.attribute.sort_key)

    images: list[str] = []
    for item in items:
        images.extend(url for url in item.images if url not in images)

    return ProductGroup(
        base_product_code=base_product_code,
        name=head.product_name,
        purchase_price=head.purchase_price,
        selling_price=head.selling_price,
        images=images,
        attribute_lines=lines,
        variant_stubs=stubs,
    )


def _item_name(item: PurchaseOrderLineItem) -> str:
    if item.variant_text:
        return f"{item.product_name} ({item.variant_text})"
    return item.product_name


# ============================================================================
# Payload
# ============================================================================


def _remote_value(value: AttributeValue, attribute: AttributeDefinition) -> RemoteAttributeValue:
    return RemoteAttributeValue(
        id=value.id,
        name=value.name,
        code=value.code,
        sequence=value.sequence,
        attribute_id=attribute.id,
        attribute_name=attribute.name,
        price_extra=float(value.price_extra) if value.price_extra is not None else None,
        name_get=f"{attribute.name}: {value.name}",
    )


def build_creation_payload(group: ProductGroup) -> RemoteTemplatePayload:
    """Map a product group to the remote template creation request.

    A group without attribute lines still sends its single variant so the
    remote product carries the local code.
    """
    attributes = {line.attribute.id: line.attribute for line in group.attribute_lines}

    def attribute_of(value: AttributeValue) -> AttributeDefinition:
        try:
            return attributes[value.attribute_id]
        except KeyError:
            raise UnknownAttributeValueError(value.name, attribute=str(value.attribute_id)) from None

    attribute_lines = [
        RemoteAttributeLine(
            attribute=RemoteAttribute(
                id=line.attribute.id,
                name=line.attribute.name,
                code=line.attribute.code,
                sequence=line.attribute.sequence,
            ),
            values=[_remote_value(value, line.attribute) for value in line.values],
            attribute_id=line.attribute.id,
        )
        for line in group.attribute_lines
    ]

    variants = [
        RemoteVariantPayload(
            default_code=stub.code,
            name=stub.name,
            name_get=stub.name,
            name_template=group.name,
            price_variant=float(group.selling_price),
            attribute_values=[_remote_value(v, attribute_of(v)) for v in stub.values],
        )
        for stub in group.variant_stubs
    ]

    return RemoteTemplatePayload(
        name=group.name,
        default_code=group.base_product_code,
        list_price=float(group.selling_price),
        purchase_price=float(group.purchase_price),
        image_url=group.images[0] if group.images else None,
        attribute_lines=attribute_lines,
        product_variants=variants,
    )
