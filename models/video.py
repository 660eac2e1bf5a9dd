from dataclasses import dataclass, field
from enum import Enum
from typing import Any

CLIP_DURATION_SECONDS = 3.0
VIDEO_WIDTH = 1080
VIDEO_HEIGHT = 1920
VIDEO_FORMAT = f"{VIDEO_WIDTH}x{VIDEO_HEIGHT}"


class VideoStatus(str, Enum):
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class VideoMeta:
    duration: float                # seconds, clip_count * CLIP_DURATION_SECONDS
    image_count: int
    timestamp: int                 # ms since epoch, identifies the run
    format: str = VIDEO_FORMAT
    warnings: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class VideoResult:
    status: VideoStatus
    meta: VideoMeta
    url: str | None = None
    error: str | None = None

    @property
    def completed(self) -> bool:
        return self.status is VideoStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status.value}
        if self.url is not None:
            payload["url"] = self.url
        if self.error is not None:
            payload["error"] = self.error
        payload["meta"] = {
            "duration": self.meta.duration,
            "imageCount": self.meta.image_count,
            "format": self.meta.format,
            "timestamp": self.meta.timestamp,
        }
        if self.meta.warnings:
            payload["meta"]["warnings"] = list(self.meta.warnings)
        return payload
