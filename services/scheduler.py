"""
Recurring catalog runs that generate one video per post.

The scheduler owns a SchedulerState: a single-flight status flag and the set of
post ids that already have a completed video. Two independent timers drive it:
a catalog run every `catalog_interval` seconds and a reset of the processed set
every `reset_interval` seconds.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import suppress
from datetime import datetime, timezone
from typing import Any, Protocol

from models import CatalogItem, RawImage, SchedulerState, SchedulerStatus, VideoResult

logger = logging.getLogger(__name__)

CATALOG_INTERVAL_SECONDS = 4 * 3600
RESET_INTERVAL_SECONDS = 24 * 3600
ITEM_DELAY_SECONDS = 5.0
PAGE_SIZE = 100


class CatalogSource(Protocol):
    def iter_catalog(self, per_page: int) -> AsyncIterator[CatalogItem]: ...


class ItemGenerator(Protocol):
    async def generate_for_item(
        self, images: list[RawImage], title: str, *, item_id: Any | None = None
    ) -> VideoResult: ...


class VideoScheduler:
    def __init__(
        self,
        source: CatalogSource,
        pipeline: ItemGenerator,
        *,
        state: SchedulerState | None = None,
        catalog_interval: float = CATALOG_INTERVAL_SECONDS,
        reset_interval: float = RESET_INTERVAL_SECONDS,
        item_delay: float = ITEM_DELAY_SECONDS,
        page_size: int = PAGE_SIZE,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._pipeline = pipeline
        self.state = state or SchedulerState()
        self._catalog_interval = catalog_interval
        self._reset_interval = reset_interval
        self._item_delay = item_delay
        self._page_size = page_size
        self._sleep = sleep
        self._timers: list[asyncio.Task[None]] = []
        self._runs: set[asyncio.Task[int | None]] = set()

    @property
    def is_running(self) -> bool:
        return self.state.status is SchedulerStatus.RUNNING

    @property
    def started(self) -> bool:
        return bool(self._timers)

    async def run_catalog(self) -> int | None:
        """
        Generate videos for every catalog item not yet processed.

        Returns the number of newly completed items, or None when another run
        is already in progress (the trigger is dropped, not queued).
        """
        if self.is_running:
            self.state.runs_skipped += 1
            logger.info("[scheduler] Already processing posts, skipping trigger")
            return None

        # No await between the check above and this assignment.
        self.state.status = SchedulerStatus.RUNNING
        self.state.runs_started += 1
        self.state.last_run_started_at = datetime.now(timezone.utc)
        completed = 0
        seen = 0
        logger.info("[scheduler] Starting video generation for catalog")
        try:
            async for item in self._source.iter_catalog(self._page_size):
                seen += 1
                if await self._process_item(item):
                    completed += 1
                # Pause after every post, skipped or not.
                await self._sleep(self._item_delay)
            logger.info("[scheduler] Finished catalog run: %d items seen, %d videos generated", seen, completed)
        except Exception as exc:  # noqa: BLE001
            logger.error("[scheduler] Catalog run aborted after %d items: %s", seen, exc, exc_info=True)
        finally:
            self.state.status = SchedulerStatus.IDLE
            self.state.last_run_finished_at = datetime.now(timezone.utc)
        return completed

    async def _process_item(self, item: CatalogItem) -> bool:
        if item.id in self.state.processed:
            logger.debug("[scheduler] Post %s already processed, skipping", item.id)
            return False
        if not item.images:
            logger.info("[scheduler] Post %s has no images, skipping video generation", item.id)
            return False

        logger.info('[scheduler] Processing video for post %s: "%s"', item.id, item.title)
        done = False
        try:
            result = await self._pipeline.generate_for_item(item.images, item.title, item_id=item.id)
        except Exception as exc:  # noqa: BLE001
            logger.error("[scheduler] Error generating video for post %s: %s", item.id, exc, exc_info=True)
        else:
            done = result.completed
            if done:
                self.state.processed.add(item.id)
                logger.info("[scheduler] Generated video for post %s: %s", item.id, result.url)
            else:
                logger.warning("[scheduler] Video generation failed for post %s: %s", item.id, result.error)
        return done

    def reset_processed(self) -> None:
        count = len(self.state.processed)
        self.state.processed.clear()
        self.state.last_reset_at = datetime.now(timezone.utc)
        logger.info("[scheduler] Cleared %d processed posts", count)

    def trigger(self) -> bool:
        """Start a catalog run in the background. Returns False if one is already running."""
        if self.is_running or self._runs:
            self.state.runs_skipped += 1
            logger.info("[scheduler] Already processing posts, skipping trigger")
            return False
        task = asyncio.create_task(self.run_catalog())
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        return True

    async def _every(self, interval: float, action: Callable[[], Any], name: str) -> None:
        while True:
            await asyncio.sleep(interval)
            logger.info("[scheduler] Running scheduled %s", name)
            action()

    def start(self, *, run_now: bool = False) -> None:
        if self._timers:
            return
        self._timers = [
            asyncio.create_task(self._every(self._catalog_interval, self.trigger, "video generation")),
            asyncio.create_task(self._every(self._reset_interval, self.reset_processed, "processed-set reset")),
        ]
        logger.info(
            "[scheduler] Started: catalog every %.0fs, reset every %.0fs",
            self._catalog_interval,
            self._reset_interval,
        )
        if run_now:
            self.trigger()

    async def stop(self) -> None:
        tasks = [*self._timers, *self._runs]
        self._timers = []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        logger.info("[scheduler] Stopped")
