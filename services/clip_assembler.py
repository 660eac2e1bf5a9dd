"""Join rendered clips with ffmpeg's concat demuxer (stream copy), batching long lists."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from contextlib import suppress

from models import CLIP_DURATION_SECONDS
from services import ffmpeg
from services.errors import AssemblyError, EncodeError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DURATION_TOLERANCE_SECONDS = 0.5


def _quote(path: str) -> str:
    # concat demuxer quoting: close the quote, escaped quote, reopen.
    return "'" + path.replace("'", "'\\''") + "'"


def write_manifest(paths: Sequence[str], manifest_path: str) -> None:
    with open(manifest_path, "w", encoding="utf-8") as f:
        for path in paths:
            f.write(f"file {_quote(os.path.abspath(path))}\n")


def build_concat_args(manifest_path: str, output_path: str) -> list[str]:
    return [
        "-f", "concat",
        "-safe", "0",
        "-i", manifest_path,
        "-c", "copy",
        "-movflags", "+faststart",
        output_path,
    ]


async def concat_once(
    paths: Sequence[str],
    output_path: str,
    *,
    label: str,
    timeout: float | None = ffmpeg.DEFAULT_FFMPEG_TIMEOUT_SECONDS,
) -> None:
    """One copy-concat pass. The manifest is removed whether or not ffmpeg succeeds."""
    manifest_path = os.path.join(os.path.dirname(os.path.abspath(output_path)), f"concat_{label}.txt")
    try:
        write_manifest(paths, manifest_path)
        logger.info("[assembler] Concatenating %d files into %s", len(paths), output_path)
        await ffmpeg.run_ffmpeg(build_concat_args(manifest_path, output_path), timeout=timeout)
    except EncodeError as exc:
        raise AssemblyError(f"Failed to concatenate {len(paths)} files into {output_path}: {exc}") from exc
    except OSError as exc:
        raise AssemblyError(f"Failed to write concat manifest {manifest_path}: {exc}") from exc
    finally:
        with suppress(FileNotFoundError):
            os.remove(manifest_path)


def _batches(paths: Sequence[str], size: int) -> list[list[str]]:
    return [list(paths[i : i + size]) for i in range(0, len(paths), size)]


async def assemble_clips(
    clip_paths: Sequence[str],
    output_path: str,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    clip_duration: float = CLIP_DURATION_SECONDS,
    timeout: float | None = ffmpeg.DEFAULT_FFMPEG_TIMEOUT_SECONDS,
) -> float | None:
    """
    Concatenate `clip_paths` in order into `output_path`.

    Up to `batch_size` clips are joined in a single pass. Longer lists are joined
    batch by batch into intermediate files, which are then joined into the output
    and removed. Returns the probed duration of the output (None if unreadable);
    a mismatch with `clip_duration * len(clip_paths)` is logged, not raised.
    """
    if not clip_paths:
        raise AssemblyError("No clips to assemble")
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    if len(clip_paths) <= batch_size:
        await concat_once(clip_paths, output_path, label="final", timeout=timeout)
    else:
        out_dir = os.path.dirname(os.path.abspath(output_path))
        intermediates: list[str] = []
        try:
            for index, batch in enumerate(_batches(clip_paths, batch_size)):
                batch_path = os.path.join(out_dir, f"batch_{index}.mp4")
                intermediates.append(batch_path)
                await concat_once(batch, batch_path, label=f"batch_{index}", timeout=timeout)
            logger.info("[assembler] Merging %d batches", len(intermediates))
            await concat_once(intermediates, output_path, label="final", timeout=timeout)
        finally:
            for path in intermediates:
                with suppress(FileNotFoundError):
                    os.remove(path)

    expected = clip_duration * len(clip_paths)
    actual = await ffmpeg.probe_duration(output_path)
    if actual is None:
        logger.warning("[assembler] Could not verify duration of %s", output_path)
    elif abs(actual - expected) > DURATION_TOLERANCE_SECONDS:
        logger.warning("[assembler] Final video duration: %.2fs (expected %.2fs)", actual, expected)
    else:
        logger.info("[assembler] Final video duration: %.2fs (expected %.2fs)", actual, expected)
    return actual
