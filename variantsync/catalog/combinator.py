"""Variant combinator.

Expands a per-attribute selection of values into the Cartesian product of
variant combinations and renders the canonical combination string that
describes the selected variant space, e.g. ``"(Red | Blue) (S | M | L)"``.

Everything here is a pure, deterministic transform.
"""

import itertools
import re
from collections.abc import Iterable, Sequence

from variantsync.catalog.attributes import (
    COLOR_CODE,
    LETTER_SIZE_CODE,
    NUMBER_SIZE_CODE,
    AttributeCatalog,
)
from variantsync.domain.exceptions import UnknownAttributeValueError
from variantsync.domain.value_objects import (
    AttributeDefinition,
    AttributeValue,
    VariantCombination,
    VariantSelection,
)

LETTER_SIZE_ORDER = ["S", "M", "L", "XL", "XXL", "XXXL"]

_GROUP_PATTERN = re.compile(r"\(([^()]*)\)")


# ============================================================================
# Combination strings
# ============================================================================


def format_combination_string(selection: VariantSelection) -> str:
    """Render the selected variant space.

    One bracketed, pipe-joined group per participating attribute, in
    declaration order. Value names must not contain ``(``, ``)`` or ``|``.
    """
    return " ".join(
        "(" + " | ".join(value.name for value in entry.values) + ")"
        for entry in selection.entries
    )


def parse_combination_string(text: str, catalog: AttributeCatalog) -> VariantSelection:
    """Inverse of ``format_combination_string`` for the given catalog."""
    return VariantCombinator(catalog).parse(text)


def variant_text(values: Iterable[AttributeValue]) -> str:
    """Per-line variant text, e.g. ``"S, Black"``."""
    return ", ".join(value.name for value in values)


def variant_name(product_name: str, values: Sequence[AttributeValue]) -> str:
    """Display name of one variant, e.g. ``"AO THUN (S, Black)"``."""
    if not values:
        return product_name
    return f"{product_name} ({variant_text(values)})"


def normalize_variant_text(text: str | None) -> frozenset[str]:
    """Order-independent, case-insensitive form of a variant text."""
    if not text:
        return frozenset()
    return frozenset(part.strip().casefold() for part in text.split(",") if part.strip())


# ============================================================================
# Value ordering
# ============================================================================


def sort_attribute_values(
    values: Iterable[AttributeValue],
    attribute_code: str,
) -> list[AttributeValue]:
    """Order values for display the way buyers expect them.

    Colours: single-word names first, then alphabetical. Numeric sizes:
    ascending numbers. Letter sizes: S, M, L, XL, XXL, XXXL, unknown
    sizes last in alphabetical order. Other attributes keep their order.
    """
    items = list(values)
    code = attribute_code.upper()

    if code == COLOR_CODE:
        return sorted(items, key=lambda v: (len(v.name.split()), v.name.casefold()))

    if code == NUMBER_SIZE_CODE:
        def number_key(v: AttributeValue) -> tuple[int, int, str]:
            name = v.name.strip()
            if name.isdigit():
                return (0, int(name), "")
            return (1, 0, name.casefold())

        return sorted(items, key=number_key)

    if code == LETTER_SIZE_CODE:
        def size_key(v: AttributeValue) -> tuple[int, int, str]:
            upper = v.name.strip().upper()
            if upper in LETTER_SIZE_ORDER:
                return (0, LETTER_SIZE_ORDER.index(upper), "")
            return (1, 0, v.name.casefold())

        return sorted(items, key=size_key)

    return items


# ============================================================================
# Combinator
# ============================================================================


class VariantCombinator:
    """Expands selections into variant combinations.

    Example:
        combinator = VariantCombinator(default_catalog())
        selection = catalog.selection_from_ids([8, 17, 1, 2, 3])
        combos = combinator.combine(selection)
        len(combos)                    # 6
        combos[0].combination_string   # "(S | M | L) (Red | Blue)"
    """

    def __init__(self, catalog: AttributeCatalog) -> None:
        """Initialize combinator.

        Args:
            catalog: Attribute catalog used to resolve names and codes.
        """
        self.catalog = catalog

    def combine(self, selection: VariantSelection) -> list[VariantCombination]:
        """Expand a selection into its Cartesian product.

        Args:
            selection: Values chosen per attribute.

        Returns:
            One combination per leaf of the expansion; empty when no
            attribute participates.
        """
        if selection.is_empty:
            return []

        combination_string = format_combination_string(selection)
        axes = [entry.values for entry in selection.entries]
        return [
            VariantCombination(
                ordered_values=tuple(values),
                combination_string=combination_string,
                synthetic_index=index,
            )
            for index, values in enumerate(itertools.product(*axes))
        ]

    def parse(self, combination_string: str) -> VariantSelection:
        """Parse a combination string back into a selection.

        Groups are matched to attributes in declaration order: each group
        binds to the next attribute whose values contain every name in it.

        Raises:
            UnknownAttributeValueError: If a group cannot be bound.
        """
        groups = [
            [name.strip() for name in raw.split("|") if name.strip()]
            for raw in _GROUP_PATTERN.findall(combination_string)
        ]
        attributes = self.catalog.list_attributes()
        mapping: dict[AttributeDefinition, list[AttributeValue]] = {}
        cursor = 0

        for names in groups:
            if not names:
                continue
            bound = False
            while cursor < len(attributes):
                attribute = attributes[cursor]
                cursor += 1
                resolved = self._resolve_names(attribute, names)
                if resolved is not None:
                    mapping[attribute] = resolved
                    bound = True
                    break
            if not bound:
                raise UnknownAttributeValueError(" | ".join(names))

        return VariantSelection.from_mapping(mapping)

    def _resolve_names(
        self, attribute: AttributeDefinition, names: list[str]
    ) -> list[AttributeValue] | None:
        by_name = {v.name.casefold(): v for v in self.catalog.list_values(attribute.id)}
        resolved = []
        for name in names:
            value = by_name.get(name.casefold())
            if value is None:
                return None
            resolved.append(value)
        return resolved

    # ------------------------------------------------------------------
    # Per-variant codes
    # ------------------------------------------------------------------

    def variant_codes(
        self,
        base_code: str,
        combinations: Sequence[VariantCombination],
        taken: Iterable[str] = (),
    ) -> list[str]:
        """Derive a unique product code for each combination.

        Args:
            base_code: Code of the base product.
            combinations: Combinations in expansion order.
            taken: Codes that are already in use.

        Returns:
            Codes aligned with ``combinations``.
        """
        used = {code.upper() for code in taken}
        codes = []
        for combination in combinations:
            code = self.variant_code(base_code, combination.ordered_values, used)
            used.add(code)
            codes.append(code)
        return codes

    def variant_code(
        self,
        base_code: str,
        values: Sequence[AttributeValue],
        taken: set[str],
    ) -> str:
        """Build one variant code.

        The base code is followed by ``A`` when numeric size is the only
        attribute, then per value its code when numeric or the upper-cased
        first character otherwise. Collisions append ``1``, ``11``, ...
        """
        kinds = {self.catalog.get_attribute(v.attribute_id).code.upper() for v in values}
        code = base_code.strip().upper()
        if kinds == {NUMBER_SIZE_CODE}:
            code += "A"

        for value in values:
            token = (value.code or value.name).strip()
            code += token if token.isdigit() else token[:1].upper()

        candidate = code
        suffix = 0
        while candidate in taken:
            suffix += 1
            candidate = code + "1" * suffix
        return candidate
