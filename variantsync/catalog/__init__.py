"""Attribute catalog access and variant combination."""

from variantsync.catalog.attributes import (
    COLOR_CODE,
    LETTER_SIZE_CODE,
    NUMBER_SIZE_CODE,
    AttributeCatalog,
    InMemoryAttributeCatalog,
    default_catalog,
    selection_from_ids,
)
from variantsync.catalog.combinator import (
    VariantCombinator,
    format_combination_string,
    normalize_variant_text,
    parse_combination_string,
    sort_attribute_values,
    variant_name,
    variant_text,
)

__all__ = [
    "COLOR_CODE",
    "LETTER_SIZE_CODE",
    "NUMBER_SIZE_CODE",
    "AttributeCatalog",
    "InMemoryAttributeCatalog",
    "VariantCombinator",
    "default_catalog",
    "selection_from_ids",
    "format_combination_string",
    "normalize_variant_text",
    "parse_combination_string",
    "sort_attribute_values",
    "variant_name",
    "variant_text",
]
