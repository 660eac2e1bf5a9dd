from .catalog import CatalogItem
from .image import RawImage
from .scheduler import SchedulerState, SchedulerStatus
from .video import (
    CLIP_DURATION_SECONDS,
    VIDEO_FORMAT,
    VIDEO_HEIGHT,
    VIDEO_WIDTH,
    VideoMeta,
    VideoResult,
    VideoStatus,
)

__all__ = [
    "CatalogItem",
    "RawImage",
    "SchedulerState",
    "SchedulerStatus",
    "CLIP_DURATION_SECONDS",
    "VIDEO_FORMAT",
    "VIDEO_HEIGHT",
    "VIDEO_WIDTH",
    "VideoMeta",
    "VideoResult",
    "VideoStatus",
]
