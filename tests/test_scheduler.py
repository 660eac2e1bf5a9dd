from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import pytest

from models import CatalogItem, RawImage, SchedulerStatus, VideoMeta, VideoResult, VideoStatus
from services.scheduler import VideoScheduler

IMAGE = RawImage(url="https://cdn.test/dish.jpg")


def _result(status: VideoStatus) -> VideoResult:
    return VideoResult(
        status=status,
        url="https://storage.test/v.mp4" if status is VideoStatus.COMPLETED else None,
        error="boom" if status is VideoStatus.ERROR else None,
        meta=VideoMeta(duration=3.0, image_count=1, timestamp=0),
    )


class FakeSource:
    def __init__(self, items: list[CatalogItem], *, fail_after: int | None = None) -> None:
        self.items = items
        self.fail_after = fail_after
        self.iterations = 0

    async def iter_catalog(self, per_page: int) -> AsyncIterator[CatalogItem]:
        self.iterations += 1
        for index, item in enumerate(self.items):
            if self.fail_after is not None and index == self.fail_after:
                raise RuntimeError("upstream down")
            yield item


class FakePipeline:
    def __init__(self, failing: set[int] | None = None) -> None:
        self.failing = failing or set()
        self.calls: list[tuple[str, Any]] = []

    async def generate_for_item(self, images, title, *, item_id=None) -> VideoResult:
        self.calls.append((title, item_id))
        if item_id in self.failing:
            return _result(VideoStatus.ERROR)
        return _result(VideoStatus.COMPLETED)


async def _no_sleep(_seconds: float) -> None:
    return None


def _items(*ids: int, images: bool = True) -> list[CatalogItem]:
    return [CatalogItem(id=i, title=f"Post {i}", images=[IMAGE] if images else []) for i in ids]


@pytest.mark.asyncio
async def test_catalog_run_generates_and_marks_processed() -> None:
    pipeline = FakePipeline()
    scheduler = VideoScheduler(FakeSource(_items(1, 2, 3)), pipeline, sleep=_no_sleep)

    completed = await scheduler.run_catalog()

    assert completed == 3
    assert [item_id for _, item_id in pipeline.calls] == [1, 2, 3]
    assert scheduler.state.processed == {1, 2, 3}
    assert scheduler.state.status is SchedulerStatus.IDLE


@pytest.mark.asyncio
async def test_processed_items_are_skipped_until_reset() -> None:
    pipeline = FakePipeline()
    scheduler = VideoScheduler(FakeSource(_items(1, 2)), pipeline, sleep=_no_sleep)
    scheduler.state.processed.add(1)

    await scheduler.run_catalog()
    assert [item_id for _, item_id in pipeline.calls] == [2]

    await scheduler.run_catalog()
    assert [item_id for _, item_id in pipeline.calls] == [2]

    scheduler.reset_processed()
    assert scheduler.state.processed == set()
    assert scheduler.state.last_reset_at is not None

    await scheduler.run_catalog()
    assert [item_id for _, item_id in pipeline.calls] == [2, 1, 2]


@pytest.mark.asyncio
async def test_failures_do_not_abort_batch_and_are_not_marked() -> None:
    pipeline = FakePipeline(failing={2})
    scheduler = VideoScheduler(FakeSource(_items(1, 2, 3)), pipeline, sleep=_no_sleep)

    completed = await scheduler.run_catalog()

    assert completed == 2
    assert scheduler.state.processed == {1, 3}


@pytest.mark.asyncio
async def test_pipeline_exception_is_logged_and_batch_continues(caplog) -> None:
    class Exploding(FakePipeline):
        async def generate_for_item(self, images, title, *, item_id=None):
            if item_id == 1:
                raise RuntimeError("unexpected")
            return await super().generate_for_item(images, title, item_id=item_id)

    scheduler = VideoScheduler(FakeSource(_items(1, 2)), Exploding(), sleep=_no_sleep)
    with caplog.at_level(logging.ERROR, logger="services.scheduler"):
        completed = await scheduler.run_catalog()

    assert completed == 1
    assert scheduler.state.processed == {2}
    assert "post 1" in caplog.text


@pytest.mark.asyncio
async def test_items_without_images_are_skipped() -> None:
    pipeline = FakePipeline()
    scheduler = VideoScheduler(FakeSource(_items(7, images=False)), pipeline, sleep=_no_sleep)

    assert await scheduler.run_catalog() == 0
    assert pipeline.calls == []
    assert scheduler.state.processed == set()


@pytest.mark.asyncio
async def test_delay_after_every_item_including_skipped() -> None:
    slept: list[float] = []

    async def _sleep(seconds: float) -> None:
        slept.append(seconds)

    items = _items(1, 2) + _items(3, images=False)
    pipeline = FakePipeline()
    scheduler = VideoScheduler(FakeSource(items), pipeline, item_delay=5.0, sleep=_sleep)
    scheduler.state.processed.add(1)
    await scheduler.run_catalog()

    assert [item_id for _, item_id in pipeline.calls] == [2]
    assert slept == [5.0, 5.0, 5.0]


@pytest.mark.asyncio
async def test_back_to_back_triggers_start_one_run() -> None:
    pipeline = FakePipeline()
    scheduler = VideoScheduler(FakeSource(_items(1)), pipeline, sleep=_no_sleep)

    assert scheduler.trigger() is True
    assert scheduler.trigger() is False
    assert scheduler.state.runs_skipped == 1

    await scheduler.stop()
    assert scheduler.state.runs_started <= 1


@pytest.mark.asyncio
async def test_second_trigger_while_running_is_dropped() -> None:
    gate = asyncio.Event()

    class Blocking(FakePipeline):
        async def generate_for_item(self, images, title, *, item_id=None):
            self.calls.append((title, item_id))
            await gate.wait()
            return _result(VideoStatus.COMPLETED)

    source = FakeSource(_items(1))
    pipeline = Blocking()
    scheduler = VideoScheduler(source, pipeline, sleep=_no_sleep)

    first = asyncio.create_task(scheduler.run_catalog())
    while not pipeline.calls:
        await asyncio.sleep(0)
    assert scheduler.is_running

    assert await scheduler.run_catalog() is None
    assert scheduler.trigger() is False

    gate.set()
    assert await first == 1
    assert source.iterations == 1
    assert scheduler.state.runs_started == 1
    assert scheduler.state.runs_skipped == 2
    assert len(pipeline.calls) == 1
    assert scheduler.state.status is SchedulerStatus.IDLE


@pytest.mark.asyncio
async def test_source_failure_ends_run_and_returns_to_idle() -> None:
    pipeline = FakePipeline()
    scheduler = VideoScheduler(FakeSource(_items(1, 2, 3), fail_after=2), pipeline, sleep=_no_sleep)

    completed = await scheduler.run_catalog()

    assert completed == 2
    assert scheduler.state.processed == {1, 2}
    assert scheduler.state.status is SchedulerStatus.IDLE
    assert scheduler.state.last_run_finished_at is not None


@pytest.mark.asyncio
async def test_timers_trigger_runs_and_resets() -> None:
    pipeline = FakePipeline()
    scheduler = VideoScheduler(
        FakeSource(_items(1)),
        pipeline,
        catalog_interval=0.01,
        reset_interval=0.015,
        item_delay=0,
    )
    scheduler.start()
    try:
        for _ in range(200):
            if scheduler.state.runs_started >= 2 and scheduler.state.last_reset_at is not None:
                break
            await asyncio.sleep(0.01)
    finally:
        await scheduler.stop()

    assert scheduler.state.runs_started >= 2
    assert scheduler.state.last_reset_at is not None
    assert not scheduler.started


@pytest.mark.asyncio
async def test_start_with_run_now_triggers_immediately() -> None:
    pipeline = FakePipeline()
    scheduler = VideoScheduler(FakeSource(_items(5)), pipeline, sleep=_no_sleep, catalog_interval=3600)
    scheduler.start(run_now=True)
    try:
        for _ in range(100):
            if scheduler.state.processed:
                break
            await asyncio.sleep(0)
    finally:
        await scheduler.stop()

    assert scheduler.state.processed == {5}
