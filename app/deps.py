"""Process-wide service instances, created on first use. Override in tests via app.dependency_overrides."""

from __future__ import annotations

from functools import lru_cache

from app.config import get_settings
from services.scheduler import VideoScheduler
from services.video_pipeline import VideoPipeline
from services.wordpress import WordPressClient


@lru_cache
def get_wordpress_client() -> WordPressClient:
    settings = get_settings()
    return WordPressClient(settings.wordpress_api_url, timeout=settings.http_timeout_seconds)


@lru_cache
def get_video_pipeline() -> VideoPipeline:
    settings = get_settings()
    return VideoPipeline(
        scratch_root=settings.video_temp_dir,
        ffmpeg_timeout=settings.ffmpeg_timeout_seconds,
        http_timeout=settings.http_timeout_seconds,
        max_concurrent_renders=settings.max_concurrent_renders or None,
    )


@lru_cache
def get_scheduler() -> VideoScheduler:
    settings = get_settings()
    return VideoScheduler(
        get_wordpress_client(),
        get_video_pipeline(),
        catalog_interval=settings.catalog_interval_seconds,
        reset_interval=settings.reset_interval_seconds,
        item_delay=settings.item_delay_seconds,
        page_size=settings.catalog_page_size,
    )
