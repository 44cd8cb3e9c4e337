"""Wire models of the remote catalog (OData).

The remote platform speaks PascalCase JSON. Fields are snake_case here and
serialized through aliases; unknown remote fields are ignored on read.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal


class RemoteModel(BaseModel):
    """Base for remote DTOs."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with remote field names."""
        return self.model_dump(by_alias=True, mode="json")


# ============================================================================
# Attributes
# ============================================================================


class RemoteAttribute(RemoteModel):
    id: int
    name: str
    code: str | None = None
    sequence: int | None = None
    create_variant: bool = True


class RemoteAttributeValue(RemoteModel):
    id: int
    name: str
    code: str | None = None
    sequence: int | None = None
    attribute_id: int
    attribute_name: str = ""
    price_extra: float | None = None
    name_get: str | None = None


class RemoteAttributeLine(RemoteModel):
    attribute: RemoteAttribute
    values: list[RemoteAttributeValue]
    attribute_id: int


# ============================================================================
# Products
# ============================================================================


class RemoteVariantPayload(RemoteModel):
    """A variant inside a template creation request."""

    id: int = 0
    default_code: str | None = None
    name: str
    name_get: str
    name_template: str
    price_variant: float = 0.0
    active: bool = True
    sale_ok: bool = Field(default=True, alias="SaleOK")
    purchase_ok: bool = Field(default=True, alias="PurchaseOK")
    type: str = "product"
    attribute_values: list[RemoteAttributeValue] = Field(default_factory=list)


class RemoteTemplatePayload(RemoteModel):
    """Creation request for a product template and all of its variants."""

    id: int = 0
    name: str
    default_code: str
    type: str = "product"
    list_price: float
    purchase_price: float
    uom_id: int = Field(default=1, alias="UOMId")
    uompo_id: int = Field(default=1, alias="UOMPOId")
    categ_id: int = 2
    active: bool = True
    sale_ok: bool = Field(default=True, alias="SaleOK")
    purchase_ok: bool = Field(default=True, alias="PurchaseOK")
    image_url: str | None = None
    attribute_lines: list[RemoteAttributeLine] = Field(default_factory=list)
    product_variants: list[RemoteVariantPayload] = Field(default_factory=list)


class RemoteVariant(RemoteModel):
    """A variant as returned by the remote catalog."""

    id: int
    default_code: str | None = None
    name: str | None = None
    name_get: str | None = None
    product_tmpl_id: int | None = None
    attribute_values: list[RemoteAttributeValue] = Field(default_factory=list)

    @property
    def variant_text(self) -> str:
        """Comma-joined attribute value names, e.g. ``"S, Black"``."""
        return ", ".join(value.name for value in self.attribute_values)


class RemoteTemplate(RemoteModel):
    """A product template read back with its variants."""

    id: int
    name: str | None = None
    default_code: str | None = None
    product_variants: list[RemoteVariant] = Field(default_factory=list)


class RemoteProductSummary(RemoteModel):
    """Row of the product lookup view used for existence checks."""

    id: int
    default_code: str | None = None
    name: str | None = None
    product_tmpl_id: int | None = None
