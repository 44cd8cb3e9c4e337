"""Tests for variant reconciliation."""

from variantsync.application.payload_builder import VariantStub
from variantsync.application.reconciliation import match_by_variant_text, reconcile
from variantsync.domain.exceptions import ReconciliationMismatch
from variantsync.infrastructure.remote_schemas import RemoteAttributeValue, RemoteVariant


def _stubs(count: int) -> list[VariantStub]:
    return [
        VariantStub(code=f"CODE{n}", name=f"Name{n}", line_item_id=f"item-{n}")
        for n in range(1, count + 1)
    ]


class TestReconcile:
    """Tests for reconcile."""

    def test_missing_variant_is_reported(self) -> None:
        """Three locals and two remotes: two matches, one missing."""
        remote = [
            RemoteVariant(id=11, default_code="CODE1", name="Name1"),
            RemoteVariant(id=12, default_code="CODE2", name="Name2"),
        ]

        report = reconcile("BASE", _stubs(3), remote)

        assert len(report.matched) == 2
        assert report.missing == ["CODE3 (Name3)"]
        assert report.unexpected == []
        assert not report.is_complete
        assert report.remote_id_for("item-2") == 12
        assert report.remote_id_for("item-3") is None

    def test_unexpected_remote_variant_is_reported(self) -> None:
        remote = [
            RemoteVariant(id=11, default_code="code1", name="Name1"),
            RemoteVariant(id=19, default_code="X9", name="Extra"),
        ]

        report = reconcile("BASE", _stubs(1), remote)

        assert report.remote_id_for("item-1") == 11
        assert report.unexpected == ["X9 (Extra)"]

    def test_codeless_locals_match_by_position(self) -> None:
        stubs = [
            VariantStub(code=None, name="First", line_item_id="a"),
            VariantStub(code=None, name="Second", line_item_id="b"),
        ]
        remote = [
            RemoteVariant(id=1, default_code="R1", name="First"),
            RemoteVariant(id=2, default_code="R2", name="Second"),
        ]

        report = reconcile("BASE", stubs, remote)

        assert report.is_complete
        assert report.remote_id_for("a") == 1
        assert report.remote_id_for("b") == 2

    def test_remote_variant_is_claimed_once(self) -> None:
        """Two locals with the same code cannot share one remote variant."""
        stubs = [
            VariantStub(code="N1", name="One", line_item_id="a"),
            VariantStub(code="N1", name="Again", line_item_id="b"),
        ]
        remote = [RemoteVariant(id=1, default_code="N1", name="One")]

        report = reconcile("N1", stubs, remote)

        assert report.remote_id_for("a") == 1
        assert report.missing == ["N1 (Again)"]

    def test_warning(self) -> None:
        report = reconcile("BASE", _stubs(2), [RemoteVariant(id=1, default_code="CODE1")])
        warning = report.warning()

        assert isinstance(warning, ReconciliationMismatch)
        assert warning.missing == ["CODE2 (Name2)"]
        assert "CODE2 (Name2)" in warning.message

    def test_complete_report_has_no_warning(self) -> None:
        remote = [RemoteVariant(id=1, default_code="CODE1")]
        assert reconcile("BASE", _stubs(1), remote).warning() is None


class TestMatchByVariantText:
    """Tests for match_by_variant_text."""

    def test_matches_ignoring_order_and_case(self) -> None:
        pink = RemoteAttributeValue(id=12, name="Pink", attribute_id=3)
        size_29 = RemoteAttributeValue(id=18, name="29", attribute_id=4)
        size_30 = RemoteAttributeValue(id=19, name="30", attribute_id=4)
        variants = [
            RemoteVariant(id=1, attribute_values=[pink, size_30]),
            RemoteVariant(id=2, attribute_values=[pink, size_29]),
        ]

        assert match_by_variant_text("29, pink", variants).id == 2
        assert match_by_variant_text("31, Pink", variants) is None
        assert match_by_variant_text("", variants) is None
