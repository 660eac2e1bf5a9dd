"""Render one still image into a fixed-length vertical clip over a blurred copy of itself."""

from __future__ import annotations

import logging

from models import CLIP_DURATION_SECONDS, VIDEO_HEIGHT, VIDEO_WIDTH
from services import ffmpeg
from services.errors import EncodeError, RenderError

logger = logging.getLogger(__name__)

FPS = 30
PIX_FMT = "yuv420p"
BLUR_RADIUS = 20
BLUR_POWER = 5
# Drift above this is logged as a warning; the clip is still used.
DURATION_TOLERANCE_SECONDS = 0.1


def build_filter_graph(width: int = VIDEO_WIDTH, height: int = VIDEO_HEIGHT) -> str:
    """Cover-scaled blurred background with the aspect-fit original centred on top."""
    return ";".join(
        [
            "[0:v]split[original][blur]",
            f"[blur]scale={width}:{height}:force_original_aspect_ratio=increase,"
            f"crop={width}:{height},boxblur={BLUR_RADIUS}:{BLUR_POWER}[blurred]",
            f"[original]scale={width}:{height}:force_original_aspect_ratio=decrease[scaled]",
            "[blurred][scaled]overlay=(W-w)/2:(H-h)/2[final]",
        ]
    )


def build_render_args(image_path: str, output_path: str, duration: float) -> list[str]:
    return [
        "-loop", "1",
        "-i", image_path,
        "-filter_complex", build_filter_graph(),
        "-map", "[final]",
        "-c:v", "libx264",
        "-t", f"{duration:g}",
        "-pix_fmt", PIX_FMT,
        "-preset", "ultrafast",
        "-r", str(FPS),
        output_path,
    ]


async def render_clip(
    image_path: str,
    output_path: str,
    duration: float = CLIP_DURATION_SECONDS,
    *,
    timeout: float | None = ffmpeg.DEFAULT_FFMPEG_TIMEOUT_SECONDS,
) -> float | None:
    """
    Encode `image_path` into `output_path`. Returns the probed duration of the
    written clip (None if it could not be read). Raises RenderError on encode failure.
    """
    try:
        await ffmpeg.run_ffmpeg(build_render_args(image_path, output_path, duration), timeout=timeout)
    except EncodeError as exc:
        logger.error("[renderer] Failed to render %s: %s", image_path, exc)
        raise RenderError(f"Failed to render clip from {image_path}: {exc}") from exc

    actual = await ffmpeg.probe_duration(output_path)
    if actual is None:
        logger.warning("[renderer] Could not verify duration of %s", output_path)
    elif abs(actual - duration) > DURATION_TOLERANCE_SECONDS:
        logger.warning(
            "[renderer] Clip duration drift: %s is %.2fs (expected %.2fs)",
            output_path,
            actual,
            duration,
        )
    else:
        logger.info("[renderer] Clip duration: %.2fs (expected %.2fs)", actual, duration)
    return actual
