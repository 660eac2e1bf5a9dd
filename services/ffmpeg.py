"""Async ffmpeg invocation and PyAV-based duration probing."""

from __future__ import annotations

import asyncio
import logging
import os
from collections import deque
from collections.abc import Callable, Sequence
from contextlib import suppress

import av
import av.error

from services.errors import EncodeError

logger = logging.getLogger(__name__)

DEFAULT_FFMPEG_TIMEOUT_SECONDS = 300.0
# Lines of stderr kept for error messages; ffmpeg prints its failure reason last.
STDERR_TAIL_LINES = 20


def get_ffmpeg_binary() -> str:
    return os.environ.get("FFMPEG_BINARY", "").strip() or "ffmpeg"


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        with suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()


async def run_ffmpeg(
    args: Sequence[str],
    *,
    timeout: float | None = DEFAULT_FFMPEG_TIMEOUT_SECONDS,
    on_output: Callable[[str], None] | None = None,
) -> None:
    """
    Run ffmpeg with `args` (binary and `-y`/`-hide_banner` are prepended).

    Returns on exit code 0. Raises EncodeError on a non-zero exit, when the
    binary cannot be started, or when `timeout` elapses (the process is killed).
    `on_output` receives each stderr line as it is produced (progress, warnings).
    """
    cmd = [get_ffmpeg_binary(), "-hide_banner", "-y", *args]
    logger.debug("[ffmpeg] %s", " ".join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise EncodeError(f"could not start {cmd[0]}: {exc}") from exc

    tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)

    async def _drain() -> int:
        assert proc.stderr is not None
        async for raw_line in proc.stderr:
            line = raw_line.decode("utf-8", errors="replace").rstrip()
            if not line:
                continue
            tail.append(line)
            if on_output is not None:
                on_output(line)
        return await proc.wait()

    try:
        returncode = await asyncio.wait_for(_drain(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(proc)
        raise EncodeError(
            f"ffmpeg timed out after {timeout:.0f}s",
            stderr="\n".join(tail),
        ) from None
    except BaseException:
        # Cancelled callers must not leave ffmpeg writing into a removed work dir.
        await _kill(proc)
        raise

    if returncode != 0:
        raise EncodeError(
            f"ffmpeg exited with code {returncode}",
            returncode=returncode,
            stderr="\n".join(tail),
        )


def _read_duration(path: str) -> float | None:
    with av.open(path) as container:
        if container.duration is not None:
            return container.duration / av.time_base
        # Fall back to the longest stream when the container has no duration.
        durations = [
            float(stream.duration * stream.time_base)
            for stream in container.streams
            if stream.duration is not None and stream.time_base is not None
        ]
        return max(durations) if durations else None


async def probe_duration(path: str) -> float | None:
    """Duration of a media file in seconds, or None when it cannot be read."""
    try:
        return await asyncio.to_thread(_read_duration, path)
    except (av.error.FFmpegError, OSError) as exc:
        logger.warning("[ffmpeg] Could not probe %s: %s", path, exc)
        return None
