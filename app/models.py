from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from models import RawImage, SchedulerStatus, VideoResult


class ImageIn(BaseModel):
    url: str
    alt: str = ""
    title: str = ""
    width: int | None = None
    height: int | None = None
    caption: str = ""

    def to_raw_image(self) -> RawImage:
        return RawImage.from_dict(self.model_dump())


class VideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1)
    images: list[ImageIn] = Field(min_length=1)
    item_id: int | None = Field(default=None, alias="itemId")


class VideoMetaResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    duration: float
    image_count: int = Field(alias="imageCount")
    format: str
    timestamp: int
    warnings: list[str] = Field(default_factory=list)


class VideoResultResponse(BaseModel):
    status: str
    url: str | None = None
    error: str | None = None
    meta: VideoMetaResponse

    @classmethod
    def from_result(cls, result: VideoResult) -> "VideoResultResponse":
        return cls.model_validate(result.to_dict())


class SchedulerStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: SchedulerStatus
    started: bool
    processed_count: int = Field(alias="processedCount")
    runs_started: int = Field(alias="runsStarted")
    runs_skipped: int = Field(alias="runsSkipped")
    last_run_started_at: datetime | None = Field(default=None, alias="lastRunStartedAt")
    last_run_finished_at: datetime | None = Field(default=None, alias="lastRunFinishedAt")
    last_reset_at: datetime | None = Field(default=None, alias="lastResetAt")


class SchedulerTriggerResponse(BaseModel):
    triggered: bool
