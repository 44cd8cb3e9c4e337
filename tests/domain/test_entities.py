"""Tests for domain entities."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from variantsync.domain.entities import CodeReservation, PurchaseOrderLineItem
from variantsync.domain.exceptions import DomainError, InvalidStateTransitionError
from variantsync.domain.state_machines import SyncStatus


def _item(**overrides) -> PurchaseOrderLineItem:
    fields = {
        "order_id": "po-1",
        "position": 1,
        "product_code": "n12sb",
        "base_product_code": "n12",
        "product_name": "  Ao thun  ",
        "variant_text": "S, Black",
        "purchase_price": Decimal("100"),
        "images": ["https://img.example/1.jpg"],
    }
    fields.update(overrides)
    return PurchaseOrderLineItem.create(**fields)


class TestPurchaseOrderLineItem:
    """Tests for PurchaseOrderLineItem."""

    def test_create_normalizes_codes_and_name(self) -> None:
        """Codes are upper-cased and the name trimmed."""
        item = _item()
        assert item.product_code == "N12SB"
        assert item.base_product_code == "N12"
        assert item.product_name == "Ao thun"

    def test_base_code_defaults_to_product_code(self) -> None:
        """A simple item is its own base product."""
        item = _item(product_code="p7", base_product_code=None, variant_text="")
        assert item.base_product_code == "P7"

    def test_variant_item_starts_pending(self) -> None:
        assert _item().sync_status is SyncStatus.PENDING

    def test_simple_item_starts_pending_no_match(self) -> None:
        assert _item(variant_text="").sync_status is SyncStatus.PENDING_NO_MATCH

    def test_item_picked_from_catalog_starts_success(self) -> None:
        """An item created with a remote id is already synchronized."""
        assert _item(remote_product_id=9).sync_status is SyncStatus.SUCCESS

    def test_missing_fields(self) -> None:
        """Name, price and images are required for submission."""
        item = _item(product_name="", purchase_price=Decimal("0"), images=[])
        assert item.missing_fields() == ["name", "price", "images"]

    def test_complete_item_has_no_missing_fields(self) -> None:
        assert _item().missing_fields() == []

    def test_label(self) -> None:
        assert _item(position=3).label == "line 3 (N12SB)"

    def test_settle_with_remote_id_succeeds(self) -> None:
        """Processing items with a matched remote id become SUCCESS."""
        item = _item()
        item.start_processing()
        assert item.sync_started_at is not None

        item.settle(501, 50)

        assert item.sync_status is SyncStatus.SUCCESS
        assert item.remote_product_id == 501
        assert item.remote_template_id == 50
        assert item.sync_completed_at is not None

    def test_settle_without_remote_id_stays_pending(self) -> None:
        """Unmatched variant items wait for the matching phase."""
        item = _item()
        item.start_processing()
        item.settle(None, 50)
        assert item.sync_status is SyncStatus.PENDING
        assert item.remote_template_id == 50

    def test_mark_failed_then_retry(self) -> None:
        """Failed items record the error and can be retried."""
        item = _item()
        item.start_processing()
        item.mark_failed("boom")
        assert item.sync_status is SyncStatus.FAILED
        assert item.sync_error == "boom"

        item.start_processing()
        assert item.sync_status is SyncStatus.PROCESSING
        assert item.sync_error is None

    def test_success_requires_remote_id(self) -> None:
        """SUCCESS without a remote product id is refused."""
        item = _item()
        with pytest.raises(DomainError):
            item.transition_to(SyncStatus.SUCCESS)
        assert item.sync_status is SyncStatus.PENDING

    def test_success_is_final(self) -> None:
        """A synchronized item cannot be submitted again."""
        item = _item(remote_product_id=9)
        with pytest.raises(InvalidStateTransitionError):
            item.start_processing()

    def test_mark_matched(self) -> None:
        item = _item()
        item.mark_matched(701, 70)
        assert item.sync_status is SyncStatus.SUCCESS
        assert item.remote_product_id == 701
        assert item.remote_template_id == 70

    def test_equality_by_identity(self) -> None:
        """Entities compare by id only."""
        a = _item()
        b = _item()
        assert a != b
        b.id = a.id
        assert a == b


class TestCodeReservation:
    """Tests for CodeReservation."""

    def test_blocks_other_owner_until_expiry(self) -> None:
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        reservation = CodeReservation(
            code="N1", owner_id="a", expires_at=now + timedelta(seconds=60)
        )

        assert reservation.blocks("b", now)
        assert not reservation.blocks("a", now)
        assert not reservation.blocks("b", now + timedelta(seconds=60))
        assert reservation.is_expired(now + timedelta(seconds=61))
