"""
Tests for UpdateScheduler.

Covers queue deduplication and ordering, batch processing, the retry cap,
scheduled jobs and the start/stop lifecycle.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from team_atlas.normalizer.schemas import PriorityTier
from team_atlas.orchestrator.country_registry import COUNTRIES, countries_in_tier
from team_atlas.orchestrator.scheduler import QueueItem, UpdateScheduler


class StubManager:
    """Stands in for TeamDataManager; outcomes are team counts or exceptions."""

    def __init__(self, outcomes=None, default=1, delay=0.0):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.delay = delay
        self.calls = []
        self.scheduler = None
        self.cache = MagicMock()
        self.cache.sweep_expired = AsyncMock(return_value=3)
        self.active = 0
        self.max_active = 0

    def attach_scheduler(self, scheduler):
        self.scheduler = scheduler

    async def load_country(self, country_code, use_cache=True):
        self.calls.append((country_code, use_cache))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.outcomes.pop(0) if self.outcomes else self.default
            if isinstance(outcome, Exception):
                raise outcome
            return SimpleNamespace(team_count=outcome)
        finally:
            self.active -= 1


def make_scheduler(manager, clock, **overrides):
    options = {
        "batch_size": 5,
        "batch_delay": 0,
        "max_concurrency": 5,
        "max_retries": 3,
        "retry_delay": 0,
        "idle_poll": 0.01,
        "auto_update": False,
        "stale_sweep_on_start": False,
        "clock": clock,
    }
    options.update(overrides)
    return UpdateScheduler(manager, **options)


@pytest.fixture
def stub():
    return StubManager()


@pytest.fixture
def scheduler(stub, clock):
    return make_scheduler(stub, clock)


class TestQueue:
    """Test enqueue semantics."""

    def test_attaches_to_manager(self, stub, scheduler):
        assert stub.scheduler is scheduler

    def test_deduplicated_by_code(self, scheduler):
        """Test a country already queued is not added again."""
        assert scheduler.enqueue("AR", "scheduled") is True
        assert scheduler.enqueue("ar", "manual") is False
        assert scheduler.enqueue("ARG", "manual") is False

        assert scheduler.queue_length == 1

    def test_tier_ordering(self, scheduler):
        """Test tier 1 items run first and FIFO order holds inside a tier."""
        for code in ("FJ", "CA", "AR", "BR", "NZ"):
            scheduler.enqueue(code, "test")

        assert scheduler.get_statistics()["queued"] == ["AR", "BR", "CA", "NZ", "FJ"]

    def test_item_fields(self, scheduler, clock):
        scheduler.enqueue("FJ", "test")

        item = scheduler._queue[0]
        assert item == QueueItem(
            country_code="FJ", priority_tier=PriorityTier.TIER_3, reason="test", added_at=clock()
        )

    def test_force_upgrades_pending_item(self, scheduler):
        scheduler.enqueue("AR", "scheduled")

        assert scheduler.force_update(["AR"]) == 0

        item = scheduler._queue[0]
        assert item.force is True
        assert item.reason == "manual_force"

    def test_force_update_counts_new_items(self, scheduler):
        assert scheduler.force_update(["AR", "BR", "AR", ""]) == 2

    def test_enqueue_tier(self, scheduler):
        added = scheduler.enqueue_tier(PriorityTier.TIER_1)

        assert added == len(countries_in_tier(PriorityTier.TIER_1))
        assert scheduler.enqueue_tier(PriorityTier.TIER_1) == 0

    def test_clear_queue(self, scheduler):
        scheduler.enqueue("AR", "test")
        scheduler.enqueue("FJ", "test")

        assert scheduler.clear_queue() == 2
        assert scheduler.queue_length == 0


class TestProcessing:
    """Test batch processing."""

    @pytest.mark.asyncio
    async def test_batch_size(self, stub, scheduler):
        for code in ("AR", "BR", "DE", "ES", "IT", "FR", "GB"):
            scheduler.enqueue(code, "test")

        result = await scheduler.process_batch()

        assert result == {"processed": 5, "succeeded": 5, "failed": 0}
        assert scheduler.queue_length == 2
        assert [code for code, _ in stub.calls] == ["AR", "BR", "DE", "ES", "IT"]

    @pytest.mark.asyncio
    async def test_empty_batch(self, scheduler):
        assert await scheduler.process_batch() == {"processed": 0, "succeeded": 0, "failed": 0}

    @pytest.mark.asyncio
    async def test_forced_items_bypass_cache(self, stub, scheduler):
        scheduler.enqueue("AR", "scheduled")
        scheduler.force_update(["BR"])

        await scheduler.process_batch()

        assert stub.calls == [("AR", True), ("BR", False)]

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, clock):
        manager = StubManager(delay=0.01)
        scheduler = make_scheduler(manager, clock, max_concurrency=2)
        for code in ("AR", "BR", "DE", "ES", "IT"):
            scheduler.enqueue(code, "test")

        await scheduler.process_batch()

        assert manager.max_active == 2

    @pytest.mark.asyncio
    async def test_success_records_update(self, stub, scheduler, clock):
        scheduler.enqueue("AR", "test")

        await scheduler.process_batch()

        assert scheduler.last_update("ar") == clock()
        stats = scheduler.get_statistics()
        assert stats["successful_updates"] == 1
        assert stats["countries_updated"] == 1
        assert stats["batches_processed"] == 1


class TestRetries:
    """Test failure handling and the retry cap."""

    @pytest.mark.asyncio
    async def test_retry_cap(self, clock):
        """Test a country failing max_retries + 1 times is dropped from the queue."""
        manager = StubManager(default=RuntimeError("source down"))
        scheduler = make_scheduler(manager, clock, max_retries=3)
        scheduler.enqueue("AR", "test")

        for attempt in range(1, 4):
            await scheduler.process_batch()
            assert scheduler.queue_length == 1
            item = scheduler._queue[0]
            assert item.retry_count == attempt
            assert item.reason == "retry"

        await scheduler.process_batch()

        assert len(manager.calls) == 4
        assert scheduler.queue_length == 0
        stats = scheduler.get_statistics()
        assert stats["failed_updates"] == 4
        assert stats["retries_scheduled"] == 3
        assert stats["dropped_items"] == 1
        assert stats["retry_counts"] == {}

    @pytest.mark.asyncio
    async def test_success_clears_retry_state(self, clock):
        manager = StubManager(outcomes=[RuntimeError("timeout")])
        scheduler = make_scheduler(manager, clock)
        scheduler.enqueue("AR", "test")

        await scheduler.process_batch()
        assert scheduler.get_statistics()["retry_counts"] == {"AR": 1}

        await scheduler.process_batch()

        assert scheduler.get_statistics()["retry_counts"] == {}
        assert scheduler.queue_length == 0
        assert scheduler.last_update("AR") is not None

    @pytest.mark.asyncio
    async def test_empty_dataset_is_failure(self, clock):
        manager = StubManager(default=0)
        scheduler = make_scheduler(manager, clock, max_retries=0)
        scheduler.enqueue("AR", "test")

        result = await scheduler.process_batch()

        assert result["failed"] == 1
        assert scheduler.get_statistics()["dropped_items"] == 1

    @pytest.mark.asyncio
    async def test_delayed_retry(self, clock):
        """Test a failed country reappears only after the retry delay."""
        manager = StubManager(outcomes=[RuntimeError("timeout")])
        scheduler = make_scheduler(manager, clock, retry_delay=0.02)
        scheduler.enqueue("AR", "test")

        await scheduler.process_batch()
        assert scheduler.queue_length == 0

        await asyncio.sleep(0.1)

        assert scheduler.get_statistics()["queued"] == ["AR"]

    @pytest.mark.asyncio
    async def test_clear_queue_cancels_retries(self, clock):
        manager = StubManager(outcomes=[RuntimeError("timeout")])
        scheduler = make_scheduler(manager, clock, retry_delay=0.02)
        scheduler.enqueue("AR", "test")
        await scheduler.process_batch()

        scheduler.clear_queue()
        await asyncio.sleep(0.1)

        assert scheduler.queue_length == 0


class TestInProgressDedup:
    """Test countries being refreshed or waiting on a retry are not queued twice."""

    @pytest.mark.asyncio
    async def test_refreshing_country_not_queued_again(self, clock):
        manager = StubManager(delay=0.05)
        scheduler = make_scheduler(manager, clock)
        scheduler.enqueue("AR", "test")

        batch = asyncio.create_task(scheduler.process_batch())
        await asyncio.sleep(0.01)

        assert manager.calls == [("AR", True)]
        assert scheduler.enqueue("AR", "scheduled") is False
        assert scheduler.force_update(["AR"]) == 0

        await batch

        assert scheduler.queue_length == 0
        assert scheduler.enqueue("AR", "scheduled") is True

    @pytest.mark.asyncio
    async def test_waiting_retry_not_queued_again(self, clock):
        """Test a tier job cannot duplicate a retry, while forcing pulls it forward."""
        manager = StubManager(outcomes=[RuntimeError("timeout")])
        scheduler = make_scheduler(manager, clock, retry_delay=60)
        scheduler.enqueue("AR", "test")
        await scheduler.process_batch()

        assert scheduler.enqueue("AR", "scheduled") is False
        assert scheduler.queue_length == 0

        assert scheduler.force_update(["AR"]) == 1
        item = scheduler._queue[0]
        assert item.force is True
        assert item.retry_count == 1

        await scheduler.process_batch()

        assert manager.calls == [("AR", True), ("AR", False)]
        assert scheduler.get_statistics()["retry_counts"] == {}
        assert scheduler.queue_length == 0


class TestStaleSweep:
    """Test queueing of stale countries."""

    @pytest.mark.asyncio
    async def test_enqueue_stale(self, stub, scheduler, clock):
        scheduler.enqueue("AR", "test")
        await scheduler.process_batch()

        assert scheduler.enqueue_stale() == len(COUNTRIES) - 1

        clock.advance(scheduler.tier_intervals[PriorityTier.TIER_1])
        assert scheduler.enqueue_stale() == 1


class TestJobs:
    """Test scheduled job bodies."""

    @pytest.mark.asyncio
    async def test_sweep_cache(self, stub, scheduler):
        await scheduler._sweep_cache()

        stub.cache.sweep_expired.assert_awaited_once()
        assert scheduler.get_statistics()["cache_sweeps"] == 1

    @pytest.mark.asyncio
    async def test_sweep_cache_error_logged(self, stub, scheduler):
        stub.cache.sweep_expired.side_effect = RuntimeError("disk full")

        await scheduler._sweep_cache()

        assert scheduler.get_statistics()["cache_sweeps"] == 0

    @pytest.mark.asyncio
    async def test_scheduled_refresh(self, scheduler):
        await scheduler._scheduled_refresh(PriorityTier.TIER_3, "scheduled")

        assert scheduler.queue_length == len(countries_in_tier(PriorityTier.TIER_3))


class TestLifecycle:
    """Test start/stop of the jobs and the worker."""

    @pytest.mark.asyncio
    async def test_start_processes_forced_updates(self, stub, scheduler):
        scheduler.start()
        try:
            assert scheduler.is_running()
            scheduler.force_update(["AR", "FJ"])
            await asyncio.sleep(0.1)

            assert stub.calls == [("AR", False), ("FJ", False)]
            jobs = [job["id"] for job in scheduler.get_statistics()["scheduled_jobs"]]
            assert jobs == ["sweep_cache"]
        finally:
            await scheduler.stop()

        assert not scheduler.is_running()
        assert scheduler.get_statistics()["scheduled_jobs"] == []

    @pytest.mark.asyncio
    async def test_tier_jobs_registered(self, stub, clock):
        async with make_scheduler(stub, clock, auto_update=True) as scheduler:
            jobs = {job["id"] for job in scheduler.get_statistics()["scheduled_jobs"]}

        assert jobs == {"refresh_tier_1", "refresh_tier_2", "refresh_tier_3", "sweep_cache"}

    @pytest.mark.asyncio
    async def test_stale_sweep_on_start(self, stub, clock):
        scheduler = make_scheduler(stub, clock, stale_sweep_on_start=True, batch_delay=60)
        scheduler.start()
        try:
            assert scheduler.queue_length + len(stub.calls) == len(COUNTRIES)
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_double_start_and_stop(self, scheduler):
        scheduler.start()
        scheduler.start()
        await scheduler.stop()
        await scheduler.stop()

        assert not scheduler.is_running()

    def test_repr(self, scheduler):
        assert "running=False" in repr(scheduler)
