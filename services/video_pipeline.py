"""
Video pipeline: select → download → render → assemble → upload → clean up.

`VideoPipeline.generate()` never raises; every failure comes back as a
VideoResult with status=error. The run's working directory is removed on
every exit path.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import tempfile
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import httpx

from models import (
    CLIP_DURATION_SECONDS,
    RawImage,
    VideoMeta,
    VideoResult,
    VideoStatus,
)
from services import gcs
from services.clip_assembler import assemble_clips
from services.clip_renderer import render_clip
from services.downloader import download_image, image_extension
from services.errors import PipelineError, StorageError
from services.ffmpeg import DEFAULT_FFMPEG_TIMEOUT_SECONDS
from services.image_selector import select_images

logger = logging.getLogger(__name__)

T = TypeVar("T")
StoreFn = Callable[[bytes, str], Awaitable[str | None]]

DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
DURATION_TOLERANCE_SECONDS = 0.5
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def default_scratch_root() -> str:
    return os.environ.get("VIDEO_TEMP_DIR", "").strip() or os.path.join(os.getcwd(), "temp")


def slugify(title: str) -> str:
    """Lowercase, non-alphanumeric runs → '-', trimmed. Falls back to 'video'."""
    return _SLUG_RE.sub("-", title.lower()).strip("-") or "video"


def video_filename(title: str, timestamp: int) -> str:
    return f"{slugify(title)}-{timestamp}.mp4"


async def _gather_in_order(coros: Sequence[Awaitable[T]]) -> list[T]:
    """
    Await all coroutines concurrently and return results in input order.
    Waits for every coroutine before re-raising the first failure, so nothing
    is still writing into the working directory when it gets removed.
    """
    results = await asyncio.gather(*coros, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)  # type: ignore[arg-type]


class VideoPipeline:
    def __init__(
        self,
        *,
        store: StoreFn | None = None,
        http_client: httpx.AsyncClient | None = None,
        scratch_root: str | None = None,
        clip_duration: float = CLIP_DURATION_SECONDS,
        ffmpeg_timeout: float | None = DEFAULT_FFMPEG_TIMEOUT_SECONDS,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        max_concurrent_renders: int | None = None,
    ) -> None:
        self._store = store or gcs.store_video
        self._http_client = http_client
        self._scratch_root = scratch_root or default_scratch_root()
        self._clip_duration = clip_duration
        self._ffmpeg_timeout = ffmpeg_timeout
        self._http_timeout = http_timeout
        self._render_slots = asyncio.Semaphore(max_concurrent_renders) if max_concurrent_renders else None
        self._item_locks: dict[Any, asyncio.Lock] = {}
        self._item_lock_users: dict[Any, int] = {}

    @property
    def scratch_root(self) -> str:
        return self._scratch_root

    async def generate_for_item(
        self,
        images: Iterable[RawImage],
        title: str,
        *,
        item_id: Any | None = None,
    ) -> VideoResult:
        """
        Entry point for both the scheduler and on-demand requests. With an
        `item_id`, concurrent generations of the same item run one after another.
        """
        if item_id is None:
            return await self.generate(images, title)
        async with self._item_lock(item_id):
            return await self.generate(images, title)

    @asynccontextmanager
    async def _item_lock(self, item_id: Any) -> AsyncIterator[None]:
        lock = self._item_locks.setdefault(item_id, asyncio.Lock())
        self._item_lock_users[item_id] = self._item_lock_users.get(item_id, 0) + 1
        if lock.locked():
            logger.info("[pipeline] Item %s is already being generated; waiting", item_id)
        try:
            async with lock:
                yield
        finally:
            self._item_lock_users[item_id] -= 1
            if self._item_lock_users[item_id] == 0:
                del self._item_lock_users[item_id]
                self._item_locks.pop(item_id, None)

    async def generate(self, images: Iterable[RawImage], title: str) -> VideoResult:
        images = list(images)
        timestamp = int(time.time() * 1000)
        logger.info('[pipeline] Generating video for "%s" from %d images', title, len(images))
        work_dir: str | None = None
        try:
            os.makedirs(self._scratch_root, exist_ok=True)
            work_dir = tempfile.mkdtemp(prefix=f"video_{timestamp}_", dir=self._scratch_root)
            return await self._run(images, title, timestamp, work_dir)
        except PipelineError as exc:
            logger.error('[pipeline] Video generation failed for "%s": %s', title, exc)
            return self._error_result(exc, len(images), timestamp)
        except Exception as exc:  # noqa: BLE001
            logger.error('[pipeline] Unexpected failure for "%s": %s', title, exc, exc_info=True)
            return self._error_result(exc, len(images), timestamp)
        finally:
            if work_dir is not None:
                shutil.rmtree(work_dir, ignore_errors=True)
                logger.debug("[pipeline] Removed working directory %s", work_dir)

    async def _run(self, images: list[RawImage], title: str, timestamp: int, work_dir: str) -> VideoResult:
        selected = select_images(images)

        image_paths = await self._download_all(selected, work_dir)
        logger.info("[pipeline] Downloaded %d images", len(image_paths))

        clip_paths = await _gather_in_order(
            [self._render(path, os.path.join(work_dir, f"clip_{i}.mp4")) for i, path in enumerate(image_paths)]
        )
        logger.info("[pipeline] Rendered %d clips", len(clip_paths))

        final_path = os.path.join(work_dir, "final.mp4")
        measured = await assemble_clips(
            clip_paths,
            final_path,
            clip_duration=self._clip_duration,
            timeout=self._ffmpeg_timeout,
        )

        filename = video_filename(title, timestamp)
        data = await asyncio.to_thread(_read_bytes, final_path)
        logger.info("[pipeline] Uploading %s (%d bytes)", filename, len(data))
        try:
            url = await self._store(data, filename)
        except Exception as exc:  # noqa: BLE001
            raise StorageError(f"Upload of {filename} failed: {exc}") from exc
        if not url:
            raise StorageError(f"Upload of {filename} failed: storage returned no URL")
        logger.info("[pipeline] Video uploaded: %s", url)

        expected = self._clip_duration * len(clip_paths)
        warnings: tuple[str, ...] = ()
        if measured is not None and abs(measured - expected) > DURATION_TOLERANCE_SECONDS:
            warnings = (f"duration mismatch: measured {measured:.2f}s, expected {expected:.2f}s",)

        return VideoResult(
            status=VideoStatus.COMPLETED,
            url=url,
            meta=VideoMeta(
                duration=expected,
                image_count=len(selected),
                timestamp=timestamp,
                warnings=warnings,
            ),
        )

    async def _download_all(self, selected: list[RawImage], work_dir: str) -> list[str]:
        async def _fetch(client: httpx.AsyncClient) -> list[str]:
            return await _gather_in_order(
                [
                    download_image(client, image.url, os.path.join(work_dir, f"image_{i}{image_extension(image.url)}"))
                    for i, image in enumerate(selected)
                ]
            )

        if self._http_client is not None:
            return await _fetch(self._http_client)
        async with httpx.AsyncClient(timeout=self._http_timeout) as client:
            return await _fetch(client)

    async def _render(self, image_path: str, clip_path: str) -> str:
        if self._render_slots is None:
            await render_clip(image_path, clip_path, self._clip_duration, timeout=self._ffmpeg_timeout)
        else:
            async with self._render_slots:
                await render_clip(image_path, clip_path, self._clip_duration, timeout=self._ffmpeg_timeout)
        return clip_path

    def _error_result(self, exc: BaseException, image_count: int, timestamp: int) -> VideoResult:
        return VideoResult(
            status=VideoStatus.ERROR,
            error=str(exc) or type(exc).__name__,
            meta=VideoMeta(duration=0, image_count=image_count, timestamp=timestamp),
        )


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()
