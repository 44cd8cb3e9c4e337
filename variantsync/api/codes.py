"""Product code API endpoints.

- POST /codes/propose - lowest free code for a product name
- POST /codes/reserve - claim a code for an editing session
- POST /codes/release - drop a session's claims
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from variantsync.api.dependencies import get_code_allocator, get_line_item_repository
from variantsync.api.schemas import (
    ErrorResponse,
    ProposeCodeRequest,
    ProposeCodeResponse,
    ReleaseCodesRequest,
    ReleaseCodesResponse,
    ReservationResponse,
    ReserveCodeRequest,
)
from variantsync.application.code_allocator import ProductCodeAllocator, derive_base_code
from variantsync.infrastructure.repositories import LineItemRepository

router = APIRouter(prefix="/codes", tags=["Codes"])


@router.post(
    "/propose",
    response_model=ProposeCodeResponse,
    responses={
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Propose a product code",
)
async def propose_code(
    request: ProposeCodeRequest,
    allocator: Annotated[ProductCodeAllocator, Depends(get_code_allocator)],
    repository: Annotated[LineItemRepository, Depends(get_line_item_repository)],
) -> ProposeCodeResponse:
    """Propose the lowest code not stored, not in scope and not reserved.

    Codes already stored on line items are always out of scope; the
    caller may add its own unsaved codes.
    """
    scope = set(request.scope_codes) | await repository.list_codes()
    code = await allocator.propose(
        request.product_name,
        scope,
        owner_id=request.owner_id,
        current_code=request.current_code,
    )
    return ProposeCodeResponse(
        code=code,
        base_code=derive_base_code(request.product_name),
        reserved=request.owner_id is not None,
    )


@router.post(
    "/reserve",
    response_model=ReservationResponse,
    responses={401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Reserve a product code",
)
async def reserve_code(
    request: ReserveCodeRequest,
    allocator: Annotated[ProductCodeAllocator, Depends(get_code_allocator)],
) -> ReservationResponse:
    reservation = await allocator.reserve(request.code, request.owner_id)
    return ReservationResponse(
        code=reservation.code,
        owner_id=reservation.owner_id,
        expires_at=reservation.expires_at,
    )


@router.post(
    "/release",
    response_model=ReleaseCodesResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Release reserved codes",
)
async def release_codes(
    request: ReleaseCodesRequest,
    allocator: Annotated[ProductCodeAllocator, Depends(get_code_allocator)],
) -> ReleaseCodesResponse:
    released = await allocator.release(request.codes, request.owner_id)
    return ReleaseCodesResponse(released=released)
