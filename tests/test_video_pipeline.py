from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from models import RawImage, VideoStatus
from services.errors import DownloadError
from services.video_pipeline import VideoPipeline, slugify, video_filename

IMAGES = [
    RawImage(url="https://cdn.test/uploads/step-2.jpg"),
    RawImage(url="https://cdn.test/uploads/step-1.png", width=1200, height=1600),
    RawImage(url="https://cdn.test/uploads/step-1-150x150.png"),
    RawImage(url="https://cdn.test/uploads/step-3.jpg"),
]


class FakeStore:
    def __init__(self, url: str | None = "https://storage.test/reels/video.mp4") -> None:
        self.url = url
        self.uploads: list[tuple[str, bytes]] = []

    async def __call__(self, data: bytes, filename: str) -> str | None:
        self.uploads.append((filename, data))
        return self.url


@pytest.fixture
def downloads(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
    seen: list[tuple[str, str]] = []

    async def _fake_download(client, url: str, path: str) -> str:
        seen.append((url, path))
        Path(path).write_bytes(b"image")
        return path

    monkeypatch.setattr("services.video_pipeline.download_image", _fake_download)
    return seen


def _pipeline(tmp_path: Path, store: FakeStore) -> VideoPipeline:
    return VideoPipeline(store=store, scratch_root=str(tmp_path))


def test_slugify() -> None:
    assert slugify("Garlic Butter Noodles (Easy!)") == "garlic-butter-noodles-easy"
    assert slugify("  --Crème brûlée--  ") == "cr-me-br-l-e"
    assert slugify("!!!") == "video"
    assert video_filename("Mapo Tofu", 1700000000000) == "mapo-tofu-1700000000000.mp4"


@pytest.mark.asyncio
async def test_generate_completes_in_selection_order(tmp_path, downloads, fake_ffmpeg, fake_probe) -> None:
    store = FakeStore()
    result = await _pipeline(tmp_path, store).generate(IMAGES, "Mapo Tofu")

    assert result.status is VideoStatus.COMPLETED
    assert result.url == "https://storage.test/reels/video.mp4"
    assert result.meta.image_count == 3
    assert result.meta.duration == 3 * result.meta.image_count
    assert result.meta.format == "1080x1920"
    assert result.meta.warnings == ()

    # Downloads are index-named in file-name order.
    assert [url for url, _ in sorted(downloads, key=lambda d: d[1])] == [
        "https://cdn.test/uploads/step-1.png",
        "https://cdn.test/uploads/step-2.jpg",
        "https://cdn.test/uploads/step-3.jpg",
    ]
    assert sorted(os.path.basename(p) for _, p in downloads) == ["image_0.png", "image_1.jpg", "image_2.jpg"]

    # The concat manifest lists clips by index.
    (manifest,) = [contents for _, contents in fake_ffmpeg.manifests]
    assert [line.rsplit("/", 1)[-1] for line in manifest.splitlines()] == ["clip_0.mp4'", "clip_1.mp4'", "clip_2.mp4'"]

    ((filename, data),) = store.uploads
    assert filename == f"mapo-tofu-{result.meta.timestamp}.mp4"
    assert data
    assert os.listdir(tmp_path) == []


@pytest.mark.asyncio
async def test_render_order_is_independent_of_completion_order(tmp_path, downloads, fake_ffmpeg, fake_probe, monkeypatch) -> None:
    original = fake_ffmpeg.run

    async def _slow_first(args, **kwargs):
        if "-filter_complex" in args and "image_0" in args[3]:
            await asyncio.sleep(0.05)
        await original(args, **kwargs)

    monkeypatch.setattr("services.ffmpeg.run_ffmpeg", _slow_first)
    result = await _pipeline(tmp_path, FakeStore()).generate(IMAGES, "Order")

    assert result.completed
    (manifest,) = [contents for _, contents in fake_ffmpeg.manifests]
    assert [line.rsplit("/", 1)[-1] for line in manifest.splitlines()] == ["clip_0.mp4'", "clip_1.mp4'", "clip_2.mp4'"]


@pytest.mark.asyncio
async def test_no_valid_images_returns_error(tmp_path, downloads, fake_ffmpeg) -> None:
    result = await _pipeline(tmp_path, FakeStore()).generate(
        [RawImage(url="https://cdn.test/a-150x150.jpg")], "Tiny"
    )
    assert result.status is VideoStatus.ERROR
    assert "No valid images" in (result.error or "")
    assert result.url is None
    assert result.meta.image_count == 1
    assert downloads == []
    assert os.listdir(tmp_path) == []


@pytest.mark.asyncio
async def test_download_failure_returns_error_and_cleans_up(tmp_path, fake_ffmpeg, monkeypatch) -> None:
    async def _fail(client, url: str, path: str) -> str:
        Path(path).write_bytes(b"partial")
        if "step-2" in url:
            raise DownloadError(f"Failed to download {url}: 404")
        return path

    monkeypatch.setattr("services.video_pipeline.download_image", _fail)
    result = await _pipeline(tmp_path, FakeStore()).generate(IMAGES, "Broken")

    assert result.status is VideoStatus.ERROR
    assert "step-2" in (result.error or "")
    assert fake_ffmpeg.calls == []
    assert os.listdir(tmp_path) == []


@pytest.mark.asyncio
async def test_render_failure_returns_error_and_cleans_up(tmp_path, downloads, fake_ffmpeg, fake_probe) -> None:
    fake_ffmpeg.fail_when = lambda args: "-filter_complex" in args and "image_1" in args[3]
    store = FakeStore()

    result = await _pipeline(tmp_path, store).generate(IMAGES, "Broken render")

    assert result.status is VideoStatus.ERROR
    assert "Failed to render clip" in (result.error or "")
    assert store.uploads == []
    assert os.listdir(tmp_path) == []


@pytest.mark.asyncio
async def test_storage_without_url_is_an_error(tmp_path, downloads, fake_ffmpeg, fake_probe) -> None:
    result = await _pipeline(tmp_path, FakeStore(url=None)).generate(IMAGES, "No storage")

    assert result.status is VideoStatus.ERROR
    assert "storage returned no URL" in (result.error or "")
    assert os.listdir(tmp_path) == []


@pytest.mark.asyncio
async def test_storage_exception_is_an_error(tmp_path, downloads, fake_ffmpeg, fake_probe) -> None:
    async def _explode(data: bytes, filename: str) -> str:
        raise RuntimeError("bucket missing")

    result = await VideoPipeline(store=_explode, scratch_root=str(tmp_path)).generate(IMAGES, "x")

    assert result.status is VideoStatus.ERROR
    assert "bucket missing" in (result.error or "")


@pytest.mark.asyncio
async def test_duration_mismatch_is_reported_as_warning(tmp_path, downloads, fake_ffmpeg, fake_probe) -> None:
    fake_probe.default = 3.0

    result = await _pipeline(tmp_path, FakeStore()).generate(IMAGES, "Drift")

    assert result.completed
    # Final video probed at 3.0s but three clips should give 9.0s.
    assert result.meta.duration == 9.0
    assert len(result.meta.warnings) == 1
    assert "expected 9.00s" in result.meta.warnings[0]
    assert result.to_dict()["meta"]["warnings"] == list(result.meta.warnings)


@pytest.mark.asyncio
async def test_same_item_generations_are_serialised(tmp_path, fake_ffmpeg, fake_probe, monkeypatch) -> None:
    active = 0
    peak = 0

    async def _download(client, url: str, path: str) -> str:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        Path(path).write_bytes(b"image")
        active -= 1
        return path

    monkeypatch.setattr("services.video_pipeline.download_image", _download)
    pipeline = _pipeline(tmp_path, FakeStore())
    one = [RawImage(url="https://cdn.test/only.jpg")]

    first, second = await asyncio.gather(
        pipeline.generate_for_item(one, "Same", item_id=42),
        pipeline.generate_for_item(one, "Same", item_id=42),
    )

    assert first.completed and second.completed
    assert peak == 1
    assert pipeline._item_locks == {}
