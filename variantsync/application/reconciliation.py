"""Reconciliation of local variants against a remote read-back.

Locals are matched to remote variants by exact code first. Locals without
a code fall back to positional correspondence with the submitted order.
Whatever is left over is reported, never silently dropped.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from variantsync.application.payload_builder import VariantStub
from variantsync.catalog.combinator import normalize_variant_text
from variantsync.domain.exceptions import ReconciliationMismatch
from variantsync.infrastructure.remote_schemas import RemoteVariant


@dataclass(frozen=True)
class VariantMatch:
    stub: VariantStub
    remote: RemoteVariant


@dataclass
class ReconciliationReport:
    """Outcome of matching one group's variants.

    Attributes:
        matched: Local/remote pairs.
        missing: Locals with no remote counterpart, as ``"CODE (Name)"``.
        unexpected: Remote variants no local claimed, as ``"CODE (Name)"``.
    """

    base_product_code: str
    matched: list[VariantMatch] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    unexpected: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.missing and not self.unexpected

    def remote_id_for(self, line_item_id: str) -> int | None:
        """Remote variant id matched to a line item, if any."""
        for match in self.matched:
            if match.stub.line_item_id == line_item_id:
                return match.remote.id
        return None

    def warning(self) -> ReconciliationMismatch | None:
        """Mismatch warning, or None when every variant lined up."""
        if self.is_complete:
            return None
        return ReconciliationMismatch(self.base_product_code, self.missing, self.unexpected)


def _remote_label(variant: RemoteVariant) -> str:
    return f"{variant.default_code or '?'} ({variant.name or variant.name_get or variant.id})"


def reconcile(
    base_product_code: str,
    stubs: Sequence[VariantStub],
    remote_variants: Sequence[RemoteVariant],
) -> ReconciliationReport:
    """Match submitted variants to the variants the remote created.

    Args:
        base_product_code: Code of the group, used in the report.
        stubs: Local variants in submitted order.
        remote_variants: Variants read back from the remote catalog.

    Returns:
        Report listing every local as matched or missing and every
        unmatched remote as unexpected.
    """
    report = ReconciliationReport(base_product_code=base_product_code)
    by_code: dict[str, int] = {}
    for index, variant in enumerate(remote_variants):
        if variant.default_code:
            by_code.setdefault(variant.default_code.strip().upper(), index)

    claimed: set[int] = set()
    positional: list[tuple[int, VariantStub]] = []

    for position, stub in enumerate(stubs):
        if not stub.code:
            positional.append((position, stub))
            continue
        index = by_code.get(stub.code.strip().upper())
        if index is None or index in claimed:
            report.missing.append(stub.label)
            continue
        claimed.add(index)
        report.matched.append(VariantMatch(stub=stub, remote=remote_variants[index]))

    for position, stub in positional:
        if position < len(remote_variants) and position not in claimed:
            claimed.add(position)
            report.matched.append(VariantMatch(stub=stub, remote=remote_variants[position]))
        else:
            report.missing.append(stub.label)

    report.unexpected = [
        _remote_label(variant)
        for index, variant in enumerate(remote_variants)
        if index not in claimed
    ]
    return report


def match_by_variant_text(
    variant_text: str,
    remote_variants: Sequence[RemoteVariant],
) -> RemoteVariant | None:
    """Find the remote variant whose attribute values equal ``variant_text``.

    Comparison ignores order and case, so ``"29, Pink"`` matches a remote
    variant with values ``pink`` and ``29``.
    """
    wanted = normalize_variant_text(variant_text)
    if not wanted:
        return None
    for variant in remote_variants:
        if normalize_variant_text(variant.variant_text) == wanted:
            return variant
    return None
