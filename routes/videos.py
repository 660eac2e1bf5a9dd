"""On-demand video generation and control of the background scheduler."""

import logging

from fastapi import APIRouter, Depends

from app.deps import get_scheduler, get_video_pipeline
from app.models import (
    SchedulerStatusResponse,
    SchedulerTriggerResponse,
    VideoRequest,
    VideoResultResponse,
)
from services.scheduler import VideoScheduler
from services.video_pipeline import VideoPipeline

router = APIRouter(prefix="/videos", tags=["videos"])
logger = logging.getLogger(__name__)


@router.post("", response_model=VideoResultResponse, response_model_exclude_none=True, response_model_by_alias=True)
async def generate_video(
    request: VideoRequest,
    pipeline: VideoPipeline = Depends(get_video_pipeline),
) -> VideoResultResponse:
    """Generate a video for one item now. Does not read or update the scheduler's processed set."""
    logger.info('[videos] Manual generation requested for "%s" (%d images)', request.title, len(request.images))
    result = await pipeline.generate_for_item(
        [image.to_raw_image() for image in request.images],
        request.title,
        item_id=request.item_id,
    )
    return VideoResultResponse.from_result(result)


def _status(scheduler: VideoScheduler) -> SchedulerStatusResponse:
    state = scheduler.state
    return SchedulerStatusResponse(
        status=state.status,
        started=scheduler.started,
        processed_count=len(state.processed),
        runs_started=state.runs_started,
        runs_skipped=state.runs_skipped,
        last_run_started_at=state.last_run_started_at,
        last_run_finished_at=state.last_run_finished_at,
        last_reset_at=state.last_reset_at,
    )


@router.get("/scheduler", response_model=SchedulerStatusResponse, response_model_by_alias=True)
def scheduler_status(scheduler: VideoScheduler = Depends(get_scheduler)) -> SchedulerStatusResponse:
    return _status(scheduler)


@router.post("/scheduler/run", response_model=SchedulerTriggerResponse, status_code=202)
async def run_scheduler(scheduler: VideoScheduler = Depends(get_scheduler)) -> SchedulerTriggerResponse:
    triggered = scheduler.trigger()
    return SchedulerTriggerResponse(triggered=triggered)


@router.post("/scheduler/reset", response_model=SchedulerStatusResponse, response_model_by_alias=True)
def reset_scheduler(scheduler: VideoScheduler = Depends(get_scheduler)) -> SchedulerStatusResponse:
    scheduler.reset_processed()
    return _status(scheduler)
