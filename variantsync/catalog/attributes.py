"""Attribute catalog access.

The attribute catalog (definitions and their admissible values) is owned
by an external system and consumed read-only. ``InMemoryAttributeCatalog``
holds a snapshot of it; ``default_catalog`` seeds the attributes the shop
uses day to day.
"""

from collections.abc import Iterable
from typing import Protocol

from variantsync.domain.exceptions import UnknownAttributeValueError
from variantsync.domain.value_objects import (
    AttributeDefinition,
    AttributeValue,
    VariantSelection,
)

# Attribute codes with special handling in variant codes and value ordering
LETTER_SIZE_CODE = "SZCH"
COLOR_CODE = "MAU"
NUMBER_SIZE_CODE = "SZNU"


class AttributeCatalog(Protocol):
    """Read-only view of attribute definitions and values."""

    def list_attributes(self) -> list[AttributeDefinition]:
        """Definitions in declaration order."""
        ...

    def get_attribute(self, attribute_id: int) -> AttributeDefinition:
        ...

    def list_values(self, attribute_id: int) -> list[AttributeValue]:
        ...

    def get_value(self, value_id: int) -> AttributeValue:
        ...


class InMemoryAttributeCatalog:
    """Snapshot of the attribute catalog kept in memory."""

    def __init__(
        self,
        attributes: Iterable[AttributeDefinition],
        values: Iterable[AttributeValue],
    ) -> None:
        self._attributes = {a.id: a for a in attributes}
        self._values = {v.id: v for v in values}
        for value in self._values.values():
            if value.attribute_id not in self._attributes:
                raise ValueError(
                    f"Value {value.id} references unknown attribute {value.attribute_id}"
                )

    def list_attributes(self) -> list[AttributeDefinition]:
        return sorted(self._attributes.values(), key=lambda a: a.sort_key)

    def get_attribute(self, attribute_id: int) -> AttributeDefinition:
        try:
            return self._attributes[attribute_id]
        except KeyError:
            raise UnknownAttributeValueError(str(attribute_id), attribute="<attribute id>") from None

    def list_values(self, attribute_id: int) -> list[AttributeValue]:
        return [v for v in self._values.values() if v.attribute_id == attribute_id]

    def get_value(self, value_id: int) -> AttributeValue:
        try:
            return self._values[value_id]
        except KeyError:
            raise UnknownAttributeValueError(str(value_id)) from None

    def selection_from_ids(self, value_ids: Iterable[int]) -> VariantSelection:
        return selection_from_ids(self, value_ids)


def selection_from_ids(catalog: AttributeCatalog, value_ids: Iterable[int]) -> VariantSelection:
    """Group value ids by attribute, keeping the given order inside each.

    Raises:
        UnknownAttributeValueError: If an id is not in the catalog.
    """
    grouped: dict[AttributeDefinition, list[AttributeValue]] = {}
    for value_id in value_ids:
        value = catalog.get_value(value_id)
        attribute = catalog.get_attribute(value.attribute_id)
        grouped.setdefault(attribute, []).append(value)
    return VariantSelection.from_mapping(grouped)


def _values(attribute_id: int, rows: list[tuple[int, str, str]]) -> list[AttributeValue]:
    return [
        AttributeValue(id=vid, attribute_id=attribute_id, name=name, code=code, sequence=index)
        for index, (vid, name, code) in enumerate(rows, start=1)
    ]


def default_catalog() -> InMemoryAttributeCatalog:
    """Build the stock attribute catalog (letter size, colour, numeric size)."""
    attributes = [
        AttributeDefinition(id=1, name="Size", code=LETTER_SIZE_CODE, sequence=1),
        AttributeDefinition(id=3, name="Color", code=COLOR_CODE, sequence=2),
        AttributeDefinition(id=4, name="Number Size", code=NUMBER_SIZE_CODE, sequence=3),
    ]
    values = (
        _values(1, [
            (5, "Free Size", "FS"),
            (1, "S", "S"),
            (2, "M", "M"),
            (3, "L", "L"),
            (4, "XL", "XL"),
            (31, "XXL", "xxl"),
            (32, "XXXL", "xxxl"),
        ])
        + _values(3, [
            (6, "White", "white"),
            (7, "Black", "black"),
            (8, "Red", "red"),
            (9, "Yellow", "yellow"),
            (10, "Orange", "orange"),
            (11, "Gray", "gray"),
            (12, "Pink", "pink"),
            (14, "Nude", "nude"),
            (15, "Brown", "brown"),
            (17, "Blue", "blue"),
            (26, "Purple", "purple"),
            (45, "Cream", "cream"),
            (53, "Navy Blue", "navyblue"),
            (86, "Light Blue", "lightblue"),
        ])
        + _values(4, [
            (22, "1", "1"),
            (23, "2", "2"),
            (24, "3", "3"),
            (80, "27", "27"),
            (81, "28", "28"),
            (18, "29", "29"),
            (19, "30", "30"),
            (20, "31", "31"),
            (21, "32", "32"),
            (33, "35", "35"),
            (34, "36", "36"),
            (35, "37", "37"),
            (36, "38", "38"),
            (37, "39", "39"),
            (44, "40", "40"),
        ])
    )
    return InMemoryAttributeCatalog(attributes, values)
