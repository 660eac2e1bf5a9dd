"""API key check and fixed-window rate limiting, applied to every /api route."""

from __future__ import annotations

import logging
import secrets
import time

from fastapi import Depends, Header, HTTPException, Request

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


def require_api_key(
    x_api_key: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.api_key:
        raise HTTPException(status_code=503, detail="API key not configured (API_KEY)")
    if not x_api_key or not secrets.compare_digest(x_api_key, settings.api_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


class RateLimiter:
    """In-memory fixed window per client address."""

    def __init__(self) -> None:
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str, *, window_seconds: float, max_requests: int, now: float | None = None) -> bool:
        """Count one request for `key`; False once the window's budget is spent."""
        now = time.monotonic() if now is None else now
        started, count = self._windows.get(key, (now, 0))
        if now - started >= window_seconds:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)
        if len(self._windows) > 10_000:
            self._evict(now, window_seconds)
        return count <= max_requests

    def _evict(self, now: float, window_seconds: float) -> None:
        expired = [k for k, (started, _) in self._windows.items() if now - started >= window_seconds]
        for k in expired:
            del self._windows[k]

    def reset(self) -> None:
        self._windows.clear()


rate_limiter = RateLimiter()


def enforce_rate_limit(request: Request, settings: Settings = Depends(get_settings)) -> None:
    client = request.client.host if request.client else "unknown"
    allowed = rate_limiter.hit(
        client,
        window_seconds=settings.rate_limit_window_ms / 1000,
        max_requests=settings.rate_limit_max_requests,
    )
    if not allowed:
        logger.warning("[security] Rate limit exceeded for %s", client)
        raise HTTPException(status_code=429, detail="Too many requests, please try again later.")
