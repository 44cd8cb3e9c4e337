"""Tests for dependency wiring."""

import asyncio

import pytest

from variantsync.api.dependencies import close_dependencies, get_tracker


class TestTrackerLifecycle:
    """The shared tracker's background watches end with the app."""

    def test_tracker_is_shared(self) -> None:
        assert get_tracker() is get_tracker()

    @pytest.mark.asyncio
    async def test_shutdown_cancels_running_watches(self) -> None:
        tracker = get_tracker()
        tracker.interval = 60
        task = tracker.start("po-1")
        await asyncio.sleep(0)

        await close_dependencies()

        assert task.cancelled()
        assert not tracker.is_watching("po-1")
