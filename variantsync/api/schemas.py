"""API schemas for the VariantSync API.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from variantsync.domain.state_machines import SyncStatus


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field or line that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Variant Schemas
# ============================================================================


class AttributeValueSchema(BaseModel):
    """An attribute value from the catalog."""

    id: int = Field(..., description="Value identifier")
    attribute_id: int = Field(..., description="Owning attribute")
    name: str = Field(..., description="Display name")
    code: str = Field(..., description="Short code")


class SelectionEntrySchema(BaseModel):
    """Selected values of one attribute."""

    attribute_id: int
    attribute_name: str
    values: list[AttributeValueSchema]


class CombineRequest(BaseModel):
    """Request to expand a selection of attribute values."""

    value_ids: list[int] = Field(
        default_factory=list, description="Selected attribute value ids, any order"
    )


class CombinationSchema(BaseModel):
    """One variant combination."""

    synthetic_index: int = Field(..., description="Position in the expansion")
    values: list[AttributeValueSchema]
    variant_text: str = Field(..., description="e.g. 'S, Black'")


class CombineResponse(BaseModel):
    """Expansion of a selection."""

    combination_string: str = Field(
        ..., description="Descriptor of the selected variant space, e.g. '(Red | Blue) (S | M)'"
    )
    count: int = Field(..., description="Number of combinations")
    combinations: list[CombinationSchema]


class ParseRequest(BaseModel):
    """Request to parse a combination string."""

    combination_string: str = Field(..., min_length=1)


class ParseResponse(BaseModel):
    """Selection described by a combination string."""

    entries: list[SelectionEntrySchema]
    value_ids: list[int]


# ============================================================================
# Code Schemas
# ============================================================================


class ProposeCodeRequest(BaseModel):
    """Request for a product code proposal."""

    product_name: str = Field(..., min_length=1, max_length=500)
    scope_codes: list[str] = Field(
        default_factory=list, description="Codes already used by the caller"
    )
    owner_id: str | None = Field(
        default=None, description="Editing session; when set the code is reserved"
    )
    current_code: str | None = Field(
        default=None, description="Code the session already holds for this product"
    )


class ProposeCodeResponse(BaseModel):
    code: str
    base_code: str
    reserved: bool


class ReserveCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    owner_id: str = Field(..., min_length=1)


class ReservationResponse(BaseModel):
    code: str
    owner_id: str
    expires_at: datetime


class ReleaseCodesRequest(BaseModel):
    codes: list[str] = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)


class ReleaseCodesResponse(BaseModel):
    released: int = Field(..., description="Number of reservations dropped")


# ============================================================================
# Line Item Schemas
# ============================================================================


class AddItemsRequest(BaseModel):
    """Request to add a product and its variants to an order."""

    product_name: str = Field(..., min_length=1, max_length=500)
    value_ids: list[int] = Field(default_factory=list)
    base_product_code: str | None = Field(
        default=None, description="Base code; proposed from the name when omitted"
    )
    purchase_price: Decimal = Field(default=Decimal("0"), ge=0)
    selling_price: Decimal = Field(default=Decimal("0"), ge=0)
    quantity: int = Field(default=1, ge=1)
    images: list[str] = Field(default_factory=list)
    owner_id: str | None = None


class LineItemSchema(BaseModel):
    """A purchase order line item."""

    id: str
    order_id: str
    position: int
    product_code: str
    base_product_code: str
    product_name: str
    variant_text: str
    quantity: int
    purchase_price: Decimal
    selling_price: Decimal
    images: list[str]
    remote_product_id: int | None = None
    remote_template_id: int | None = None
    sync_status: SyncStatus
    sync_error: str | None = None


class LineItemsResponse(BaseModel):
    items: list[LineItemSchema]


# ============================================================================
# Sync Schemas
# ============================================================================


class GroupOutcomeSchema(BaseModel):
    """Outcome of one product group."""

    base_product_code: str
    success: bool
    template_id: int | None = None
    matched_count: int = 0
    missing: list[str] = Field(default_factory=list)
    unexpected: list[str] = Field(default_factory=list)
    warning: str | None = None
    error_code: str | None = None
    error: str | None = None


class SyncJobResponse(BaseModel):
    """Summary of a sync job."""

    order_id: str
    item_count: int
    succeeded_count: int
    failed_count: int
    groups: list[GroupOutcomeSchema]


class MatchResponse(BaseModel):
    """Result of matching pending items."""

    order_id: str
    matched_count: int
    unmatched: list[str]
    errors: dict[str, str]


class SyncStatusResponse(BaseModel):
    """Aggregate sync state of an order."""

    order_id: str
    processing_count: int
    failed_count: int
    success_count: int
    pending_count: int
    total_count: int
    destructive_actions_allowed: bool = Field(
        ..., description="False while any line item is being synchronized"
    )
