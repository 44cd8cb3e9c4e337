"""Remote catalog synchronization.

Creates new products and their variants in the remote catalog, one
product group per call, and reconciles what the remote created with the
local line items. Groups run strictly one after another with a pause
between calls; a failing group is recorded and the batch moves on.

Flow per group:
    existence check -> create -> read back -> reconcile
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from variantsync.application.code_allocator import ProductCodeAllocator
from variantsync.application.payload_builder import (
    ProductGroup,
    build_creation_payload,
    group_line_items,
)
from variantsync.application.reconciliation import (
    ReconciliationReport,
    match_by_variant_text,
    reconcile,
)
from variantsync.catalog.attributes import AttributeCatalog
from variantsync.domain.entities import PurchaseOrderLineItem
from variantsync.domain.exceptions import (
    DomainError,
    RemoteCatalogError,
    RemoteDuplicateError,
    ValidationError,
)
from variantsync.domain.state_machines import SyncStatus
from variantsync.infrastructure.config import settings
from variantsync.infrastructure.remote_schemas import (
    RemoteProductSummary,
    RemoteTemplate,
    RemoteTemplatePayload,
)
from variantsync.infrastructure.repositories import LineItemRepository, is_claimable

logger = structlog.get_logger()


# ============================================================================
# Collaborators
# ============================================================================


class RemoteCatalog(Protocol):
    """The remote catalog operations the orchestrator relies on."""

    async def find_by_code(self, code: str) -> RemoteProductSummary | None:
        ...

    async def create_template(self, payload: RemoteTemplatePayload) -> int:
        ...

    async def get_template(self, template_id: int) -> RemoteTemplate:
        ...


class SyncEventHandler(Protocol):
    """Receives progress events of a batch.

    Handlers are injected into the orchestrator; exceptions they raise
    propagate to the caller.
    """

    async def group_started(self, group: ProductGroup, index: int, total: int) -> None:
        ...

    async def group_finished(self, outcome: "GroupOutcome", index: int, total: int) -> None:
        ...


# ============================================================================
# Results
# ============================================================================


@dataclass
class SubmitResult:
    """Result of creating one product group."""

    template_id: int
    template: RemoteTemplate
    report: ReconciliationReport

    @property
    def warning(self) -> str | None:
        mismatch = self.report.warning()
        return mismatch.message if mismatch else None


@dataclass
class GroupOutcome:
    """Outcome of one group within a batch."""

    base_product_code: str
    success: bool
    template_id: int | None = None
    report: ReconciliationReport | None = None
    error: str | None = None
    error_code: str | None = None
    warning: str | None = None


@dataclass
class BatchResult:
    """Summary of a batch of group submissions."""

    groups: list[GroupOutcome] = field(default_factory=list)

    @property
    def succeeded_count(self) -> int:
        return sum(1 for g in self.groups if g.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for g in self.groups if not g.success)


@dataclass
class SyncJob:
    """One commit attempt of an order's unsynchronized line items."""

    order_id: str
    item_count: int = 0
    batch: BatchResult = field(default_factory=BatchResult)

    @property
    def groups(self) -> list[GroupOutcome]:
        return self.batch.groups

    @property
    def succeeded_count(self) -> int:
        return self.batch.succeeded_count

    @property
    def failed_count(self) -> int:
        return self.batch.failed_count


@dataclass
class MatchResult:
    """Result of the matching phase for pending line items."""

    order_id: str
    matched_count: int = 0
    unmatched: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


GroupSettler = Callable[[ProductGroup, GroupOutcome], Awaitable[None]]


# ============================================================================
# Orchestrator
# ============================================================================


class RemoteCatalogSyncOrchestrator:
    """Uploads product groups to the remote catalog.

    Example:
        orchestrator = RemoteCatalogSyncOrchestrator(client, repository, catalog)
        job = await orchestrator.sync_order("po-1")
        print(job.succeeded_count, job.failed_count)
    """

    def __init__(
        self,
        remote: RemoteCatalog,
        repository: LineItemRepository,
        catalog: AttributeCatalog,
        handler: SyncEventHandler | None = None,
        inter_call_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        allocator: ProductCodeAllocator | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            remote: Remote catalog client.
            repository: Line item repository.
            catalog: Attribute catalog used to build groups.
            handler: Optional progress event handler.
            inter_call_delay: Pause between groups, defaults to settings.
            sleep: Awaitable used for the pause.
            allocator: Code allocator whose reservations are released
                once an order is committed.
        """
        self.remote = remote
        self.repository = repository
        self.catalog = catalog
        self.handler = handler
        self.inter_call_delay = (
            inter_call_delay
            if inter_call_delay is not None
            else settings.inter_call_delay_seconds
        )
        self._sleep = sleep
        self.allocator = allocator

    # ------------------------------------------------------------------
    # Single group
    # ------------------------------------------------------------------

    async def submit(self, group: ProductGroup) -> SubmitResult:
        """Create one product group remotely and reconcile the result.

        Args:
            group: The base product and its variants.

        Returns:
            Created template id, read-back and reconciliation report.

        Raises:
            RemoteDuplicateError: If the base code already exists remotely.
            RemoteTransportError: On network or HTTP failure.
            RemoteResponseError: If the remote answer is unusable.
        """
        log = logger.bind(base_product_code=group.base_product_code)

        existing = await self.remote.find_by_code(group.base_product_code)
        if existing is not None:
            raise RemoteDuplicateError(
                group.base_product_code,
                remote_id=existing.id,
                remote_name=existing.name,
            )

        payload = build_creation_payload(group)
        template_id = await self.remote.create_template(payload)
        template = await self.remote.get_template(template_id)

        report = reconcile(
            group.base_product_code,
            group.variant_stubs,
            template.product_variants,
        )
        if report.is_complete:
            log.info(
                "Product group created",
                template_id=template_id,
                variant_count=len(report.matched),
            )
        else:
            log.warning(
                "Product group created with unmatched variants",
                template_id=template_id,
                matched=len(report.matched),
                missing=report.missing,
                unexpected=report.unexpected,
            )

        return SubmitResult(template_id=template_id, template=template, report=report)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def submit_batch(self, groups: Sequence[ProductGroup]) -> BatchResult:
        """Submit groups one after another.

        A group failing with a domain error is recorded and the batch
        continues with the next group.
        """
        return await self._run_batch(groups)

    async def _run_batch(
        self,
        groups: Sequence[ProductGroup],
        settle: GroupSettler | None = None,
    ) -> BatchResult:
        result = BatchResult()
        total = len(groups)

        for index, group in enumerate(groups):
            if index > 0 and self.inter_call_delay > 0:
                await self._sleep(self.inter_call_delay)

            if self.handler:
                await self.handler.group_started(group, index, total)

            try:
                submitted = await self.submit(group)
            except DomainError as e:
                logger.warning(
                    "Product group failed",
                    base_product_code=group.base_product_code,
                    error_code=e.error_code,
                    error=e.message,
                )
                outcome = GroupOutcome(
                    base_product_code=group.base_product_code,
                    success=False,
                    error=e.message,
                    error_code=e.error_code,
                )
            else:
                outcome = GroupOutcome(
                    base_product_code=group.base_product_code,
                    success=True,
                    template_id=submitted.template_id,
                    report=submitted.report,
                    warning=submitted.warning,
                )

            if settle:
                await settle(group, outcome)
            result.groups.append(outcome)

            if self.handler:
                await self.handler.group_finished(outcome, index, total)

        logger.info(
            "Batch finished",
            group_count=total,
            succeeded=result.succeeded_count,
            failed=result.failed_count,
        )
        return result

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def sync_order(self, order_id: str, owner_id: str | None = None) -> SyncJob:
        """Upload every unsynchronized line item of an order.

        Every candidate is validated before the first network call. Items
        are then claimed atomically, so a concurrent job for the same order
        only uploads what it claimed. Items whose group was already created
        remotely are left to ``match_pending``. Item statuses are persisted
        after each group so status polls see progress while the batch runs.

        Args:
            order_id: The purchase order to commit.
            owner_id: Editing session whose code reservations for the
                uploaded items are released once the batch is over.

        Raises:
            ValidationError: If any candidate misses a required field.
        """
        items = await self.repository.list_for_order(order_id)
        candidates = [item for item in items if is_claimable(item)]
        job = SyncJob(order_id=order_id)
        if not candidates:
            logger.info("Nothing to synchronize", order_id=order_id)
            return job

        problems = {
            item.label: missing
            for item in candidates
            if (missing := item.missing_fields())
        }
        if problems:
            raise ValidationError(problems)

        claimed = await self.repository.claim_for_sync(candidates)
        job.item_count = len(claimed)
        if not claimed:
            logger.info("Order is already being synchronized", order_id=order_id)
            return job

        groups = group_line_items(claimed, self.catalog)
        by_id = {item.id: item for item in claimed}

        async def settle(group: ProductGroup, outcome: GroupOutcome) -> None:
            members = [by_id[item_id] for item_id in group.line_item_ids]
            for item in members:
                if outcome.success and outcome.report is not None:
                    item.settle(outcome.report.remote_id_for(item.id), outcome.template_id)
                else:
                    item.mark_failed(outcome.error or "Upload failed")
            await self.repository.save_all(members)

        logger.info(
            "Synchronizing order",
            order_id=order_id,
            item_count=len(claimed),
            skipped=len(candidates) - len(claimed),
            group_count=len(groups),
        )
        try:
            job.batch = await self._run_batch(groups, settle)
        except Exception as e:
            stranded = [i for i in claimed if i.sync_status.is_in_flight()]
            for item in stranded:
                item.mark_failed(f"Sync aborted: {e}")
            await self.repository.save_all(stranded)
            raise
        finally:
            if owner_id and self.allocator:
                codes = {c for i in claimed for c in (i.product_code, i.base_product_code)}
                await self.allocator.release(codes, owner_id)

        return job

    async def match_pending(self, order_id: str) -> MatchResult:
        """Match pending variant items to variants that exist remotely.

        Items are matched within their base product by variant text,
        ignoring order and case. A remote failure for one base product is
        recorded and the others are still tried.
        """
        items = await self.repository.list_for_order(order_id)
        pending = [i for i in items if i.sync_status is SyncStatus.PENDING]
        result = MatchResult(order_id=order_id)

        by_base: dict[str, list[PurchaseOrderLineItem]] = {}
        for item in pending:
            by_base.setdefault(item.base_product_code, []).append(item)

        for index, (base_code, members) in enumerate(by_base.items()):
            if index > 0 and self.inter_call_delay > 0:
                await self._sleep(self.inter_call_delay)
            try:
                template = await self._find_template(base_code)
            except RemoteCatalogError as e:
                logger.warning("Matching lookup failed", base_product_code=base_code, error=e.message)
                result.errors[base_code] = e.message
                result.unmatched.extend(item.label for item in members)
                continue

            matched = []
            for item in members:
                variant = (
                    match_by_variant_text(item.variant_text, template.product_variants)
                    if template
                    else None
                )
                if variant is None:
                    result.unmatched.append(item.label)
                    continue
                item.mark_matched(variant.id, template.id)
                matched.append(item)

            if matched:
                await self.repository.save_all(matched)
                result.matched_count += len(matched)

        logger.info(
            "Matching finished",
            order_id=order_id,
            matched=result.matched_count,
            unmatched=len(result.unmatched),
        )
        return result

    async def _find_template(self, base_code: str) -> RemoteTemplate | None:
        existing = await self.remote.find_by_code(base_code)
        if existing is None:
            return None
        return await self.remote.get_template(existing.product_tmpl_id or existing.id)
