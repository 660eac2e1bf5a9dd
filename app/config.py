"""Environment-driven settings. `.env` is loaded by server.py before this is read."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from services.ffmpeg import DEFAULT_FFMPEG_TIMEOUT_SECONDS
from services.scheduler import CATALOG_INTERVAL_SECONDS, ITEM_DELAY_SECONDS, PAGE_SIZE, RESET_INTERVAL_SECONDS
from services.video_pipeline import DEFAULT_HTTP_TIMEOUT_SECONDS, default_scratch_root
from services.wordpress import get_wordpress_api_url


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def _env_bool(name: str, default: bool = False) -> bool:
    value = _env(name)
    if not value:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = _env(name)
    try:
        return float(value) if value else default
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    try:
        return int(value) if value else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    app_env: str = "production"
    port: int = 3000
    allowed_origins: tuple[str, ...] = ("http://localhost:3000",)
    rate_limit_window_ms: int = 900_000
    rate_limit_max_requests: int = 100
    wordpress_api_url: str = ""
    video_temp_dir: str = ""
    ffmpeg_timeout_seconds: float = DEFAULT_FFMPEG_TIMEOUT_SECONDS
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    max_concurrent_renders: int = 0      # 0 = unbounded
    scheduler_enabled: bool = True
    scheduler_run_on_startup: bool = False
    catalog_interval_seconds: float = CATALOG_INTERVAL_SECONDS
    reset_interval_seconds: float = RESET_INTERVAL_SECONDS
    item_delay_seconds: float = ITEM_DELAY_SECONDS
    catalog_page_size: int = PAGE_SIZE

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def load_settings() -> Settings:
    app_env = _env("APP_ENV", "production").lower()
    origins = [o.strip() for o in _env("ALLOWED_ORIGINS").split(",") if o.strip()]
    return Settings(
        api_key=_env("API_KEY"),
        app_env=app_env,
        port=_env_int("PORT", 3000),
        allowed_origins=tuple(origins) or ("http://localhost:3000",),
        rate_limit_window_ms=_env_int("RATE_LIMIT_WINDOW_MS", 900_000),
        rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 100),
        wordpress_api_url=get_wordpress_api_url(),
        video_temp_dir=default_scratch_root(),
        ffmpeg_timeout_seconds=_env_float("FFMPEG_TIMEOUT_SECONDS", DEFAULT_FFMPEG_TIMEOUT_SECONDS),
        http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS),
        max_concurrent_renders=_env_int("MAX_CONCURRENT_RENDERS", 0),
        scheduler_enabled=_env_bool("SCHEDULER_ENABLED", True),
        # Production starts with a catalog run, matching the deployed behaviour.
        scheduler_run_on_startup=_env_bool("SCHEDULER_RUN_ON_STARTUP", app_env == "production"),
        catalog_interval_seconds=_env_float("CATALOG_INTERVAL_SECONDS", CATALOG_INTERVAL_SECONDS),
        reset_interval_seconds=_env_float("RESET_INTERVAL_SECONDS", RESET_INTERVAL_SECONDS),
        item_delay_seconds=_env_float("ITEM_DELAY_SECONDS", ITEM_DELAY_SECONDS),
        catalog_page_size=_env_int("CATALOG_PAGE_SIZE", PAGE_SIZE),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
