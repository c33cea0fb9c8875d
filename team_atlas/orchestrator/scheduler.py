"""
Country Refresh Scheduler.

APScheduler-based tiered refresh jobs feeding a deduplicated, tier-ordered
work queue that is drained in bounded concurrent batches with retry.
"""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import CacheConfig, SchedulerConfig
from ..normalizer.schemas import PriorityTier
from ..utils.exceptions import UpdateError
from .country_registry import COUNTRIES, classify_tier, countries_in_tier, normalize_country_code

if TYPE_CHECKING:
    from .data_manager import TeamDataManager

logger = logging.getLogger(__name__)

DEFAULT_TIER_INTERVALS = {
    PriorityTier.TIER_1: SchedulerConfig.TIER_1_INTERVAL_SECONDS,
    PriorityTier.TIER_2: SchedulerConfig.TIER_2_INTERVAL_SECONDS,
    PriorityTier.TIER_3: SchedulerConfig.TIER_3_INTERVAL_SECONDS,
}


@dataclass(frozen=True)
class QueueItem:
    """One pending country refresh."""

    country_code: str
    priority_tier: PriorityTier
    reason: str
    added_at: float
    retry_count: int = 0
    force: bool = False


class UpdateScheduler:
    """
    Tiered background refresh of country datasets.

    Scheduled Tasks:
        - Tier 1 countries: daily
        - Tier 2 countries: weekly
        - Tier 3 countries: every 30 days
        - Hourly: sweep expired cache entries

    Queue Semantics:
        - One pending or in-progress item per country; tier 1 items run first, FIFO within a tier
        - Batches of ``batch_size`` run concurrently, at most ``max_concurrency`` at once
        - A failed country is retried after ``retry_delay`` up to ``max_retries``
          times, then dropped until its next natural cycle

    Example:
        >>> manager = TeamDataManager()
        >>> async with UpdateScheduler(manager) as scheduler:
        ...     scheduler.force_update(["AR", "BR"])
        ...     await asyncio.sleep(60)
    """

    def __init__(
        self,
        manager: "TeamDataManager",
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        idle_poll: Optional[float] = None,
        tier_intervals: Optional[dict[PriorityTier, float]] = None,
        sweep_interval: Optional[float] = None,
        auto_update: Optional[bool] = None,
        stale_sweep_on_start: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the scheduler and attach it to ``manager``.

        Args:
            manager: Orchestrator whose ``load_country`` is the unit of work
            batch_size: Items taken from the queue per batch
            batch_delay: Pause after each batch in seconds
            max_concurrency: Concurrent refreshes inside a batch
            max_retries: Re-queues allowed per country before it is dropped
            retry_delay: Seconds before a failed country is re-queued (0 = immediately)
            idle_poll: Seconds the worker waits on an empty queue before re-checking
            tier_intervals: Refresh interval per tier in seconds
            sweep_interval: Cache sweep interval in seconds
            auto_update: False disables the tier jobs (forced updates still run)
            stale_sweep_on_start: Queue countries whose last update is older than
                their tier interval when the scheduler starts
            clock: Source of timestamps in seconds
        """
        self.manager = manager
        self.batch_size = batch_size or SchedulerConfig.BATCH_SIZE
        self.batch_delay = batch_delay if batch_delay is not None else SchedulerConfig.BATCH_DELAY_SECONDS
        self.max_concurrency = max_concurrency or SchedulerConfig.MAX_CONCURRENCY
        self.max_retries = max_retries if max_retries is not None else SchedulerConfig.MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else SchedulerConfig.RETRY_DELAY_SECONDS
        self.idle_poll = idle_poll if idle_poll is not None else SchedulerConfig.IDLE_POLL_SECONDS
        self.tier_intervals = {**DEFAULT_TIER_INTERVALS, **(tier_intervals or {})}
        self.sweep_interval = sweep_interval or CacheConfig.SWEEP_INTERVAL_SECONDS
        self.auto_update = auto_update if auto_update is not None else SchedulerConfig.AUTO_UPDATE_ENABLED
        self.stale_sweep_on_start = stale_sweep_on_start
        self._clock = clock

        self.scheduler = AsyncIOScheduler()

        # State management
        self._queue: list[QueueItem] = []
        self._retry_counts: dict[str, int] = {}
        self._last_updates: dict[str, float] = {}
        self._retry_handles: dict[str, asyncio.TimerHandle] = {}
        self._in_flight: set[str] = set()
        self._wakeup = asyncio.Event()
        self._worker: Optional[asyncio.Task] = None
        self._is_running = False

        # Statistics
        self._stats = {
            "batches_processed": 0,
            "successful_updates": 0,
            "failed_updates": 0,
            "retries_scheduled": 0,
            "dropped_items": 0,
            "cache_sweeps": 0,
        }

        manager.attach_scheduler(self)

        logger.info(
            f"UpdateScheduler initialized: batch_size={self.batch_size}, "
            f"max_retries={self.max_retries}, retry_delay={self.retry_delay}s"
        )

    # ========== Queue ==========

    def enqueue(
        self,
        country_code: str,
        reason: str,
        force: bool = False,
        retry_count: int = 0,
    ) -> bool:
        """
        Queue one country at its natural tier.

        A country is queued at most once, counting refreshes in progress and
        retries waiting on their timer. A forced request upgrades a queued item
        so that it bypasses the cache, and pulls a waiting retry forward.

        Returns:
            bool: True if a new item was queued
        """
        code = normalize_country_code(country_code)
        if not code:
            return False

        if code in self._in_flight:
            return False

        pending_retry = self._retry_handles.get(code)
        if pending_retry is not None:
            if not force:
                return False
            pending_retry.cancel()
            del self._retry_handles[code]
            retry_count = max(retry_count, self._retry_counts.get(code, 0))

        for index, queued in enumerate(self._queue):
            if queued.country_code == code:
                if force and not queued.force:
                    self._queue[index] = replace(queued, force=True, reason=reason)
                return False

        item = QueueItem(
            country_code=code,
            priority_tier=classify_tier(code),
            reason=reason,
            added_at=self._clock(),
            retry_count=retry_count,
            force=force,
        )
        self._insert(item)
        return True

    def _insert(self, item: QueueItem) -> None:
        # After the last item of the same or a higher tier keeps FIFO order within a tier
        position = len(self._queue)
        for index, queued in enumerate(self._queue):
            if queued.priority_tier > item.priority_tier:
                position = index
                break
        self._queue.insert(position, item)
        self._wakeup.set()
        logger.debug(
            f"Queued {item.country_code} ({item.reason})",
            extra={"country_code": item.country_code, "tier": item.priority_tier.value, "position": position},
        )

    def force_update(self, country_codes: Iterable[str], reason: str = "manual_force") -> int:
        """
        Queue immediate refreshes that bypass the cache.

        Returns:
            int: Number of countries newly queued
        """
        added = sum(1 for code in country_codes if self.enqueue(code, reason, force=True))
        logger.info(f"Forced update queued for {added} countries ({reason})")
        return added

    def enqueue_tier(self, tier: PriorityTier, reason: str = "scheduled") -> int:
        """Queue every registry country of one tier."""
        added = sum(1 for code in countries_in_tier(tier) if self.enqueue(code, reason))
        logger.info(f"Queued {added} tier {tier.value} countries ({reason})")
        return added

    def enqueue_stale(self) -> int:
        """Queue countries never updated, or updated longer ago than their tier interval."""
        now = self._clock()
        added = 0
        for code, info in COUNTRIES.items():
            last_update = self._last_updates.get(code)
            if last_update is None or now - last_update >= self.tier_intervals[info.tier]:
                added += self.enqueue(code, "stale_data")
        logger.info(f"Queued {added} countries with stale data")
        return added

    def clear_queue(self) -> int:
        """Drop every pending item and scheduled retry."""
        cleared = len(self._queue)
        self._queue.clear()
        for handle in self._retry_handles.values():
            handle.cancel()
        self._retry_handles.clear()
        logger.info(f"Cleared {cleared} queued countries")
        return cleared

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    # ========== Processing ==========

    async def process_batch(self) -> dict[str, int]:
        """
        Run the next batch of queued refreshes.

        Returns:
            Dictionary with ``processed``, ``succeeded`` and ``failed`` counts
        """
        batch = self._queue[:self.batch_size]
        del self._queue[:self.batch_size]
        if not batch:
            return {"processed": 0, "succeeded": 0, "failed": 0}
        self._in_flight.update(item.country_code for item in batch)

        semaphore = asyncio.Semaphore(self.max_concurrency)
        results = await asyncio.gather(
            *(self._process_item(item, semaphore) for item in batch),
            return_exceptions=True,
        )
        succeeded = sum(1 for result in results if result is True)
        self._stats["batches_processed"] += 1

        logger.info(
            f"Processed batch of {len(batch)}: {succeeded} succeeded, {len(batch) - succeeded} failed",
            extra={"countries": [item.country_code for item in batch], "queue_length": len(self._queue)},
        )
        return {"processed": len(batch), "succeeded": succeeded, "failed": len(batch) - succeeded}

    async def _process_item(self, item: QueueItem, semaphore: asyncio.Semaphore) -> bool:
        try:
            async with semaphore:
                dataset = await self.manager.load_country(item.country_code, use_cache=not item.force)
            if dataset.team_count == 0:
                raise UpdateError(
                    "Refresh returned no teams",
                    country_code=item.country_code,
                    retry_count=self._retry_counts.get(item.country_code, 0),
                )
        except Exception as e:
            # Released first so an immediate retry can be queued
            self._in_flight.discard(item.country_code)
            self._handle_failure(item, e)
            return False
        finally:
            self._in_flight.discard(item.country_code)

        self._retry_counts.pop(item.country_code, None)
        self._last_updates[item.country_code] = self._clock()
        self._stats["successful_updates"] += 1
        return True

    def _handle_failure(self, item: QueueItem, error: Exception) -> None:
        code = item.country_code
        failures = self._retry_counts.get(code, 0) + 1
        self._stats["failed_updates"] += 1

        if failures > self.max_retries:
            self._retry_counts.pop(code, None)
            self._stats["dropped_items"] += 1
            logger.warning(
                f"Dropping {code} after {failures} failed attempts: {error}",
                extra={"country_code": code, "error_type": type(error).__name__},
            )
            return

        self._retry_counts[code] = failures
        self._stats["retries_scheduled"] += 1
        retry = replace(item, retry_count=failures, reason="retry", added_at=self._clock())
        logger.warning(
            f"Refresh failed for {code} (attempt {failures}/{self.max_retries + 1}), retrying in {self.retry_delay}s: {error}",
            extra={"country_code": code, "retry_count": failures, "error_type": type(error).__name__},
        )

        if self.retry_delay <= 0:
            self._requeue(retry)
        else:
            handle = asyncio.get_running_loop().call_later(self.retry_delay, self._requeue, retry)
            self._retry_handles[code] = handle

    def _requeue(self, item: QueueItem) -> None:
        self._retry_handles.pop(item.country_code, None)
        self.enqueue(item.country_code, item.reason, force=item.force, retry_count=item.retry_count)

    async def _run(self) -> None:
        """Drain the queue until stopped."""
        while self._is_running:
            if not self._queue:
                self._wakeup.clear()
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=self.idle_poll)
                except asyncio.TimeoutError:
                    pass
                continue

            try:
                await self.process_batch()
            except Exception as e:
                logger.error(f"Error in batch processing: {e}", exc_info=True)

            if self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

    async def _scheduled_refresh(self, tier: PriorityTier, reason: str) -> None:
        # Coroutine jobs run on the event loop rather than in the executor thread pool
        self.enqueue_tier(tier, reason)

    async def _sweep_cache(self) -> None:
        """Remove expired cache entries; scheduled hourly."""
        try:
            removed = await self.manager.cache.sweep_expired()
            self._stats["cache_sweeps"] += 1
            logger.info(f"Cache sweep completed: {removed} entries removed")
        except Exception as e:
            logger.error(f"Error during cache sweep: {e}", exc_info=True)

    # ========== Lifecycle ==========

    def start(self) -> None:
        """
        Register the jobs and start the queue worker.

        Must be called from inside a running event loop.
        """
        if self._is_running:
            logger.warning("Scheduler is already running")
            return

        loop = asyncio.get_running_loop()
        self.scheduler.configure(event_loop=loop)

        if self.auto_update:
            for tier in PriorityTier:
                self.scheduler.add_job(
                    func=self._scheduled_refresh,
                    trigger=IntervalTrigger(seconds=self.tier_intervals[tier]),
                    args=[tier, "scheduled"],
                    id=f"refresh_tier_{tier.value}",
                    name=f"Tier {tier.value} Refresh",
                    replace_existing=True,
                    max_instances=1,
                )

        self.scheduler.add_job(
            func=self._sweep_cache,
            trigger=IntervalTrigger(seconds=self.sweep_interval),
            id="sweep_cache",
            name="Cache Sweep",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._is_running = True

        if self.stale_sweep_on_start:
            self.enqueue_stale()

        self._worker = loop.create_task(self._run())

        logger.info(
            "UpdateScheduler started",
            extra={"jobs": [job.id for job in self.scheduler.get_jobs()], "queue_length": len(self._queue)},
        )

    async def stop(self) -> None:
        """Stop the jobs and the queue worker; pending items stay queued."""
        if not self._is_running:
            logger.warning("Scheduler is not running")
            return

        logger.info("Stopping UpdateScheduler...")
        self._is_running = False
        self.scheduler.shutdown(wait=False)

        for handle in self._retry_handles.values():
            handle.cancel()
        self._retry_handles.clear()

        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None

        logger.info("UpdateScheduler stopped successfully")

    def is_running(self) -> bool:
        """Check if scheduler is currently running."""
        return self._is_running

    def get_statistics(self) -> dict[str, Any]:
        """
        Scheduler state, queue contents and processing counters.

        Returns:
            Dictionary with ``is_running``, ``queue_length``, ``queued``,
            ``retry_counts``, ``countries_updated``, counters and job info
        """
        return {
            "is_running": self._is_running,
            "queue_length": len(self._queue),
            "queued": [item.country_code for item in self._queue],
            "retry_counts": dict(self._retry_counts),
            "countries_updated": len(self._last_updates),
            **self._stats,
            "scheduled_jobs": [
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                }
                for job in self.scheduler.get_jobs()
            ]
            if self._is_running
            else [],
        }

    def last_update(self, country_code: str) -> Optional[float]:
        """Timestamp of the last successful refresh of a country."""
        return self._last_updates.get(normalize_country_code(country_code))

    async def __aenter__(self) -> "UpdateScheduler":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"UpdateScheduler(queue={len(self._queue)}, running={self._is_running}, "
            f"batch_size={self.batch_size}, max_retries={self.max_retries})"
        )
