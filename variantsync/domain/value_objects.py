"""Value Objects for the domain layer.

Attribute definitions and values come from the external attribute catalog
and are never mutated here. Selections and combinations are derived from
them by the variant combinator.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from variantsync.domain.base import ValueObject


# ============================================================================
# Attribute Catalog Values
# ============================================================================


@dataclass(frozen=True)
class AttributeDefinition(ValueObject):
    """An axis of product variation (e.g. Color).

    Attributes:
        id: Catalog identifier (also the remote attribute id).
        name: Display name.
        code: Short code.
        sequence: Declaration order within the catalog.
    """

    id: int
    name: str
    code: str
    sequence: int = 0

    @property
    def sort_key(self) -> tuple[int, int]:
        """Declaration order key: sequence first, id breaks ties."""
        return (self.sequence, self.id)


@dataclass(frozen=True)
class AttributeValue(ValueObject):
    """One admissible value along an attribute's axis (e.g. Red).

    Attributes:
        id: Catalog identifier (also the remote value id).
        attribute_id: Owning attribute.
        name: Display name.
        code: Short code used for variant codes.
        sequence: Order within the attribute.
        price_extra: Optional surcharge for the value.
    """

    id: int
    attribute_id: int
    name: str
    code: str
    sequence: int | None = None
    price_extra: Decimal | None = None


# ============================================================================
# Selections
# ============================================================================


@dataclass(frozen=True)
class SelectionEntry(ValueObject):
    """Selected values of one participating attribute."""

    attribute: AttributeDefinition
    values: tuple[AttributeValue, ...]


@dataclass(frozen=True)
class VariantSelection(ValueObject):
    """Per-attribute choice of values.

    Entries are kept in catalog declaration order. Values inside an entry
    keep the order they were given in, without duplicates. Attributes
    with no selected value are not stored.
    """

    entries: tuple[SelectionEntry, ...] = ()

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[AttributeDefinition, Iterable[AttributeValue]],
    ) -> Self:
        """Build a selection from an attribute -> values mapping.

        Args:
            mapping: Values chosen per attribute, in any attribute order.

        Returns:
            Normalized selection.
        """
        entries = []
        for attribute, values in mapping.items():
            seen: set[int] = set()
            unique: list[AttributeValue] = []
            for value in values:
                if value.id in seen:
                    continue
                seen.add(value.id)
                unique.append(value)
            if unique:
                entries.append(SelectionEntry(attribute=attribute, values=tuple(unique)))
        entries.sort(key=lambda e: e.attribute.sort_key)
        return cls(entries=tuple(entries))

    @property
    def is_empty(self) -> bool:
        """True when no attribute participates."""
        return not self.entries

    @property
    def attributes(self) -> list[AttributeDefinition]:
        """Participating attributes in declaration order."""
        return [entry.attribute for entry in self.entries]

    def value_ids(self) -> list[int]:
        """All selected value ids in declaration order."""
        return [value.id for entry in self.entries for value in entry.values]


@dataclass(frozen=True)
class VariantCombination(ValueObject):
    """One value per participating attribute.

    Attributes:
        ordered_values: The combination's values in attribute declaration order.
        combination_string: Descriptor of the whole selected variant space,
            shared by every combination of one expansion.
        synthetic_index: Position of the combination in the expansion.
    """

    ordered_values: tuple[AttributeValue, ...]
    combination_string: str
    synthetic_index: int

    @property
    def value_ids(self) -> list[int]:
        """Ids of the combination's values."""
        return [value.id for value in self.ordered_values]

    @property
    def value_names(self) -> list[str]:
        """Names of the combination's values."""
        return [value.name for value in self.ordered_values]
