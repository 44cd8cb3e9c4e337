"""Variant API endpoints.

- POST /variants/combine - expand selected attribute values into combinations
- POST /variants/parse - parse a combination string back into a selection
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from variantsync.api.dependencies import get_catalog
from variantsync.api.schemas import (
    AttributeValueSchema,
    CombinationSchema,
    CombineRequest,
    CombineResponse,
    ErrorResponse,
    ParseRequest,
    ParseResponse,
    SelectionEntrySchema,
)
from variantsync.catalog.attributes import InMemoryAttributeCatalog, selection_from_ids
from variantsync.catalog.combinator import (
    VariantCombinator,
    parse_combination_string,
    variant_text,
)
from variantsync.domain.value_objects import AttributeValue

router = APIRouter(prefix="/variants", tags=["Variants"])


def _value_schema(value: AttributeValue) -> AttributeValueSchema:
    return AttributeValueSchema(
        id=value.id,
        attribute_id=value.attribute_id,
        name=value.name,
        code=value.code,
    )


@router.post(
    "/combine",
    response_model=CombineResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Expand a selection",
)
async def combine_variants(
    request: CombineRequest,
    catalog: Annotated[InMemoryAttributeCatalog, Depends(get_catalog)],
) -> CombineResponse:
    """Expand the selected values into the Cartesian product of variants.

    Values are grouped per attribute; attributes run in catalog
    declaration order. An empty selection yields no combinations.
    """
    selection = selection_from_ids(catalog, request.value_ids)
    combinations = VariantCombinator(catalog).combine(selection)

    return CombineResponse(
        combination_string=combinations[0].combination_string if combinations else "",
        count=len(combinations),
        combinations=[
            CombinationSchema(
                synthetic_index=combination.synthetic_index,
                values=[_value_schema(v) for v in combination.ordered_values],
                variant_text=variant_text(combination.ordered_values),
            )
            for combination in combinations
        ],
    )


@router.post(
    "/parse",
    response_model=ParseResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Parse a combination string",
)
async def parse_combination(
    request: ParseRequest,
    catalog: Annotated[InMemoryAttributeCatalog, Depends(get_catalog)],
) -> ParseResponse:
    selection = parse_combination_string(request.combination_string, catalog)
    return ParseResponse(
        entries=[
            SelectionEntrySchema(
                attribute_id=entry.attribute.id,
                attribute_name=entry.attribute.name,
                values=[_value_schema(v) for v in entry.values],
            )
            for entry in selection.entries
        ],
        value_ids=selection.value_ids(),
    )
