"""Shared fixtures: a fake ffmpeg that writes its output file, and a duration probe stub."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from services.errors import EncodeError


@pytest.fixture
def anyio_backend() -> str:
    """The app is built on asyncio; run anyio-marked tests on that backend only."""
    return "asyncio"


class FakeFfmpeg:
    """Stands in for services.ffmpeg.run_ffmpeg; records every invocation."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.manifests: list[tuple[str, str]] = []   # (path, contents) captured at call time
        self.fail_when: Callable[[list[str]], bool] | None = None

    async def run(
        self,
        args: Sequence[str],
        *,
        timeout: float | None = None,
        on_output: Callable[[str], None] | None = None,
    ) -> None:
        args = list(args)
        self.calls.append(args)
        if "concat" in args:
            manifest = args[args.index("-i") + 1]
            self.manifests.append((manifest, Path(manifest).read_text(encoding="utf-8")))
        if self.fail_when is not None and self.fail_when(args):
            raise EncodeError("ffmpeg exited with code 1", returncode=1, stderr="Conversion failed!")
        Path(args[-1]).write_bytes(b"\x00\x00\x00\x18ftypmp42")

    @property
    def concat_calls(self) -> list[list[str]]:
        return [call for call in self.calls if "concat" in call]

    @property
    def render_calls(self) -> list[list[str]]:
        return [call for call in self.calls if "-filter_complex" in call]


class FakeProbe:
    def __init__(self) -> None:
        self.durations: dict[str, float | None] = {}
        self.default: float | None = None
        self.probed: list[str] = []

    async def __call__(self, path: str) -> float | None:
        self.probed.append(path)
        return self.durations.get(path, self.default)


@pytest.fixture
def fake_ffmpeg(monkeypatch: pytest.MonkeyPatch) -> FakeFfmpeg:
    fake = FakeFfmpeg()
    monkeypatch.setattr("services.ffmpeg.run_ffmpeg", fake.run)
    return fake


@pytest.fixture
def fake_probe(monkeypatch: pytest.MonkeyPatch) -> FakeProbe:
    probe = FakeProbe()
    monkeypatch.setattr("services.ffmpeg.probe_duration", probe)
    return probe
