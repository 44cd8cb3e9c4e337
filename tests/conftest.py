"""Shared fixtures and fakes."""

from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from variantsync.catalog.attributes import InMemoryAttributeCatalog, default_catalog
from variantsync.domain.entities import PurchaseOrderLineItem
from variantsync.domain.exceptions import RemoteCatalogError
from variantsync.domain.value_objects import AttributeDefinition, AttributeValue
from variantsync.infrastructure.database import create_tables
from variantsync.infrastructure.remote_schemas import (
    RemoteProductSummary,
    RemoteTemplate,
    RemoteTemplatePayload,
    RemoteVariant,
)
from variantsync.infrastructure.repositories import InMemoryLineItemRepository


class FakeRemoteCatalog:
    """In-memory stand-in for the remote catalog.

    Created templates get their variants back with the submitted codes,
    except codes listed in ``drop_codes``. ``create_errors`` maps a base
    code to the error its creation raises.
    """

    def __init__(self) -> None:
        self.products: dict[str, RemoteProductSummary] = {}
        self.templates: dict[int, RemoteTemplate] = {}
        self.created: list[RemoteTemplatePayload] = []
        self.lookups: list[str] = []
        self.create_errors: dict[str, RemoteCatalogError] = {}
        self.lookup_errors: dict[str, RemoteCatalogError] = {}
        self.drop_codes: set[str] = set()
        self._next_id = 100

    async def find_by_code(self, code: str) -> RemoteProductSummary | None:
        self.lookups.append(code)
        if code in self.lookup_errors:
            raise self.lookup_errors[code]
        return self.products.get(code)

    async def create_template(self, payload: RemoteTemplatePayload) -> int:
        if payload.default_code in self.create_errors:
            raise self.create_errors[payload.default_code]
        self.created.append(payload)

        template_id = self._next_id
        self._next_id += 1
        variants = [
            RemoteVariant(
                id=template_id * 10 + index,
                default_code=variant.default_code,
                name=variant.name,
                product_tmpl_id=template_id,
                attribute_values=variant.attribute_values,
            )
            for index, variant in enumerate(payload.product_variants)
            if variant.default_code not in self.drop_codes
        ]
        self.templates[template_id] = RemoteTemplate(
            id=template_id,
            name=payload.name,
            default_code=payload.default_code,
            product_variants=variants,
        )
        self.products[payload.default_code] = RemoteProductSummary(
            id=template_id,
            default_code=payload.default_code,
            name=payload.name,
            product_tmpl_id=template_id,
        )
        return template_id

    async def get_template(self, template_id: int) -> RemoteTemplate:
        return self.templates[template_id]


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_item(
    position: int,
    product_code: str,
    base_product_code: str,
    variant_text: str = "",
    value_ids: list[int] | None = None,
    order_id: str = "po-1",
    images: list[str] | None = None,
    purchase_price: Decimal = Decimal("100"),
) -> PurchaseOrderLineItem:
    """Build a line item that is ready for submission."""
    return PurchaseOrderLineItem.create(
        order_id=order_id,
        position=position,
        product_code=product_code,
        base_product_code=base_product_code,
        product_name="Ao thun",
        variant_text=variant_text,
        purchase_price=purchase_price,
        selling_price=Decimal("150"),
        images=["https://img.example/1.jpg"] if images is None else images,
        selected_attribute_value_ids=value_ids,
    )


@pytest.fixture
def catalog() -> InMemoryAttributeCatalog:
    """Stock attribute catalog (Size declared before Color)."""
    return default_catalog()


@pytest.fixture
def color_first_catalog() -> InMemoryAttributeCatalog:
    """Small catalog declaring Color before Size."""
    color = AttributeDefinition(id=10, name="Color", code="MAU", sequence=1)
    size = AttributeDefinition(id=20, name="Size", code="SZCH", sequence=2)
    values = [
        AttributeValue(id=101, attribute_id=10, name="Red", code="red"),
        AttributeValue(id=102, attribute_id=10, name="Blue", code="blue"),
        AttributeValue(id=201, attribute_id=20, name="S", code="S"),
        AttributeValue(id=202, attribute_id=20, name="M", code="M"),
        AttributeValue(id=203, attribute_id=20, name="L", code="L"),
    ]
    return InMemoryAttributeCatalog([size, color], values)


@pytest.fixture
def repository() -> InMemoryLineItemRepository:
    return InMemoryLineItemRepository()


@pytest.fixture
def remote() -> FakeRemoteCatalog:
    return FakeRemoteCatalog()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'variantsync.db'}")
    await create_tables(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def item_factory():
    """Factory for submission-ready line items."""
    return make_item
