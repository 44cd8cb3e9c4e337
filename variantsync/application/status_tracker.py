"""Sync status tracking.

Aggregates the sync states of an order's line items, watches an order
until no item is in flight, and gates destructive actions on orders that
are still being synchronized.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

from variantsync.domain.exceptions import OrderBusyError
from variantsync.domain.state_machines import SyncStatus
from variantsync.infrastructure.config import settings
from variantsync.infrastructure.repositories import LineItemRepository

logger = structlog.get_logger()


@dataclass(frozen=True)
class SyncProgress:
    """Aggregate sync state of one order."""

    order_id: str
    processing_count: int = 0
    failed_count: int = 0
    success_count: int = 0
    pending_count: int = 0
    total_count: int = 0

    @property
    def is_quiescent(self) -> bool:
        """True when no item of the order is being synchronized."""
        return self.processing_count == 0


ProgressCallback = Callable[[SyncProgress], Awaitable[None]]


class SyncStatusTracker:
    """Polls line item states of orders.

    Example:
        tracker = SyncStatusTracker(repository)
        final = await tracker.watch("po-1")
        assert final.processing_count == 0
    """

    def __init__(
        self,
        repository: LineItemRepository,
        interval: float | None = None,
        max_attempts: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize tracker.

        Args:
            repository: Line item repository to read states from.
            interval: Seconds between polls, defaults to settings.
            max_attempts: Poll limit per watch, defaults to settings.
            sleep: Awaitable used between polls.
        """
        self.repository = repository
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self.max_attempts = (
            max_attempts if max_attempts is not None else settings.poll_max_attempts
        )
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task[SyncProgress]] = {}

    async def poll(self, order_id: str) -> SyncProgress:
        """Count the order's items per sync state. Read-only."""
        items = await self.repository.list_for_order(order_id)
        counts = {status: 0 for status in SyncStatus}
        for item in items:
            counts[item.sync_status] += 1
        return SyncProgress(
            order_id=order_id,
            processing_count=counts[SyncStatus.PROCESSING],
            failed_count=counts[SyncStatus.FAILED],
            success_count=counts[SyncStatus.SUCCESS],
            pending_count=counts[SyncStatus.PENDING] + counts[SyncStatus.PENDING_NO_MATCH],
            total_count=len(items),
        )

    async def watch(
        self,
        order_id: str,
        on_update: ProgressCallback | None = None,
    ) -> SyncProgress:
        """Poll until the order has settled.

        The first poll that sees no item in flight schedules exactly one
        more poll; only a second consecutive zero stops the watch. Items
        still being written when the first zero is seen get picked up by
        the confirming poll.

        Returns:
            The last progress observed.
        """
        confirming = False
        progress = SyncProgress(order_id=order_id)

        for attempt in range(1, self.max_attempts + 1):
            progress = await self.poll(order_id)
            if on_update:
                await on_update(progress)

            if progress.processing_count == 0:
                if confirming:
                    logger.debug("Order settled", order_id=order_id, polls=attempt)
                    return progress
                confirming = True
            else:
                confirming = False

            if attempt < self.max_attempts:
                await self._sleep(self.interval)

        logger.warning(
            "Stopped watching order before it settled",
            order_id=order_id,
            polls=self.max_attempts,
            processing=progress.processing_count,
        )
        return progress

    # ------------------------------------------------------------------
    # Background watches
    # ------------------------------------------------------------------

    def start(
        self,
        order_id: str,
        on_update: ProgressCallback | None = None,
    ) -> asyncio.Task[SyncProgress]:
        """Watch an order in a background task; reuses a running watch."""
        task = self._tasks.get(order_id)
        if task is not None and not task.done():
            return task

        task = asyncio.create_task(self.watch(order_id, on_update), name=f"watch-{order_id}")
        self._tasks[order_id] = task
        task.add_done_callback(lambda t: self._forget(order_id, t))
        return task

    def _forget(self, order_id: str, task: asyncio.Task[SyncProgress]) -> None:
        if self._tasks.get(order_id) is task:
            del self._tasks[order_id]

    def is_watching(self, order_id: str) -> bool:
        task = self._tasks.get(order_id)
        return task is not None and not task.done()

    async def stop(self, order_id: str) -> bool:
        """Cancel the watch of an order; returns False when none was running."""
        task = self._tasks.pop(order_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        return True

    async def close(self) -> None:
        """Cancel every running watch."""
        for order_id in list(self._tasks):
            await self.stop(order_id)

    # ------------------------------------------------------------------
    # Gating
    # ------------------------------------------------------------------

    async def is_quiescent(self, order_id: str) -> bool:
        return (await self.poll(order_id)).is_quiescent

    async def ensure_quiescent(self, order_id: str) -> SyncProgress:
        """Raise unless no item of the order is being synchronized.

        Raises:
            OrderBusyError: While any item is in flight.
        """
        progress = await self.poll(order_id)
        if not progress.is_quiescent:
            raise OrderBusyError(order_id, progress.processing_count)
        return progress
