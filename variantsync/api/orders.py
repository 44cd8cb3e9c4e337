"""Order synchronization API endpoints.

Provides endpoints for purchase order line items and their sync:
- POST /orders/{id}/items - add a product and its variants
- DELETE /orders/{id}/items/{position} - remove a line (blocked during sync)
- POST /orders/{id}/sync - upload unsynchronized lines to the remote catalog
- POST /orders/{id}/match - match pending variant lines to remote variants
- GET /orders/{id}/sync-status - aggregate sync state
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from variantsync.api.dependencies import (
    get_line_item_service,
    get_orchestrator,
    get_tracker,
)
from variantsync.api.schemas import (
    AddItemsRequest,
    ErrorResponse,
    GroupOutcomeSchema,
    LineItemSchema,
    LineItemsResponse,
    MatchResponse,
    SyncJobResponse,
    SyncStatusResponse,
)
from variantsync.application.line_item_service import LineItemService
from variantsync.application.status_tracker import SyncStatusTracker
from variantsync.application.sync_orchestrator import (
    GroupOutcome,
    RemoteCatalogSyncOrchestrator,
)
from variantsync.domain.entities import PurchaseOrderLineItem

router = APIRouter(prefix="/orders", tags=["Orders"])


# ============================================================================
# Converters
# ============================================================================


def item_to_schema(item: PurchaseOrderLineItem) -> LineItemSchema:
    """Convert a line item to its API representation."""
    return LineItemSchema(
        id=item.id,
        order_id=item.order_id,
        position=item.position,
        product_code=item.product_code,
        base_product_code=item.base_product_code,
        product_name=item.product_name,
        variant_text=item.variant_text,
        quantity=item.quantity,
        purchase_price=item.purchase_price,
        selling_price=item.selling_price,
        images=item.images,
        remote_product_id=item.remote_product_id,
        remote_template_id=item.remote_template_id,
        sync_status=item.sync_status,
        sync_error=item.sync_error,
    )


def outcome_to_schema(outcome: GroupOutcome) -> GroupOutcomeSchema:
    report = outcome.report
    return GroupOutcomeSchema(
        base_product_code=outcome.base_product_code,
        success=outcome.success,
        template_id=outcome.template_id,
        matched_count=len(report.matched) if report else 0,
        missing=report.missing if report else [],
        unexpected=report.unexpected if report else [],
        warning=outcome.warning,
        error_code=outcome.error_code,
        error=outcome.error,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/{order_id}/items",
    response_model=LineItemsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Add a product to an order",
)
async def add_items(
    order_id: str,
    request: AddItemsRequest,
    service: Annotated[LineItemService, Depends(get_line_item_service)],
) -> LineItemsResponse:
    """Add one line per variant combination of the selected values.

    Without ``base_product_code`` a code is proposed from the product
    name (and reserved for ``owner_id`` when given).
    """
    items = await service.add_product(
        order_id=order_id,
        product_name=request.product_name,
        value_ids=request.value_ids,
        base_product_code=request.base_product_code,
        purchase_price=request.purchase_price,
        selling_price=request.selling_price,
        quantity=request.quantity,
        images=request.images,
        owner_id=request.owner_id,
    )
    return LineItemsResponse(items=[item_to_schema(item) for item in items])


@router.delete(
    "/{order_id}/items/{position}",
    response_model=LineItemSchema,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Remove a line item",
)
async def remove_item(
    order_id: str,
    position: int,
    service: Annotated[LineItemService, Depends(get_line_item_service)],
    owner_id: str | None = Query(default=None, description="Session whose reservations to release"),
) -> LineItemSchema:
    """Remove a line item. Refused with 409 while the order is syncing."""
    item = await service.remove_item(order_id, position, owner_id=owner_id)
    return item_to_schema(item)


@router.post(
    "/{order_id}/sync",
    response_model=SyncJobResponse,
    responses={
        401: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Upload unsynchronized line items",
)
async def sync_order(
    order_id: str,
    orchestrator: Annotated[RemoteCatalogSyncOrchestrator, Depends(get_orchestrator)],
    owner_id: str | None = Query(
        default=None, description="Session whose code reservations are released afterwards"
    ),
) -> SyncJobResponse:
    """Create the order's new products in the remote catalog.

    Runs to completion before answering. Per-group failures are part of
    the summary; only validation problems fail the request.
    """
    job = await orchestrator.sync_order(order_id, owner_id=owner_id)
    return SyncJobResponse(
        order_id=job.order_id,
        item_count=job.item_count,
        succeeded_count=job.succeeded_count,
        failed_count=job.failed_count,
        groups=[outcome_to_schema(outcome) for outcome in job.groups],
    )


@router.post(
    "/{order_id}/match",
    response_model=MatchResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Match pending variants",
)
async def match_pending(
    order_id: str,
    orchestrator: Annotated[RemoteCatalogSyncOrchestrator, Depends(get_orchestrator)],
) -> MatchResponse:
    result = await orchestrator.match_pending(order_id)
    return MatchResponse(
        order_id=result.order_id,
        matched_count=result.matched_count,
        unmatched=result.unmatched,
        errors=result.errors,
    )


@router.get(
    "/{order_id}/sync-status",
    response_model=SyncStatusResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Get sync status",
)
async def get_sync_status(
    order_id: str,
    tracker: Annotated[SyncStatusTracker, Depends(get_tracker)],
) -> SyncStatusResponse:
    progress = await tracker.poll(order_id)
    return SyncStatusResponse(
        order_id=order_id,
        processing_count=progress.processing_count,
        failed_count=progress.failed_count,
        success_count=progress.success_count,
        pending_count=progress.pending_count,
        total_count=progress.total_count,
        destructive_actions_allowed=progress.is_quiescent,
    )
