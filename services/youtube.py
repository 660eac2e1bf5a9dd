"""YouTube embed helpers: parse video ids and fetch metadata from the Data API."""

from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx

logger = logging.getLogger(__name__)

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3/videos"
THUMBNAIL_SIZES = ("default", "medium", "high", "standard", "maxres")


def get_youtube_api_key() -> str:
    return os.environ.get("YOUTUBE_API_KEY", "").strip()


def extract_youtube_video_id(url: str) -> str | None:
    """Video id from watch, short (youtu.be) and embed URLs; None for anything else."""
    if "youtube.com/watch" in url:
        ids = parse_qs(urlsplit(url).query).get("v")
        return ids[0] if ids else None
    for marker in ("youtu.be/", "youtube.com/embed/"):
        if marker in url:
            video_id = url.split(marker, 1)[1].split("?", 1)[0].split("/", 1)[0]
            return video_id or None
    return None


def _shape_video(video_id: str, video: dict[str, Any]) -> dict[str, Any]:
    snippet = video.get("snippet") or {}
    thumbnails = snippet.get("thumbnails") or {}
    statistics = video.get("statistics") or {}
    return {
        "id": video_id,
        "type": "youtube",
        "title": snippet.get("title"),
        "description": snippet.get("description"),
        "publishedAt": snippet.get("publishedAt"),
        "thumbnails": {size: (thumbnails.get(size) or {}).get("url") for size in THUMBNAIL_SIZES},
        "statistics": {
            "viewCount": statistics.get("viewCount"),
            "likeCount": statistics.get("likeCount"),
            "commentCount": statistics.get("commentCount"),
        },
        "duration": (video.get("contentDetails") or {}).get("duration"),
        "embedHtml": (video.get("player") or {}).get("embedHtml"),
        "directUrls": {
            "embed": f"https://www.youtube.com/embed/{video_id}",
            "watch": f"https://www.youtube.com/watch?v={video_id}",
            "share": f"https://youtu.be/{video_id}",
        },
    }


async def get_enhanced_youtube_data(
    client: httpx.AsyncClient,
    video_id: str,
    *,
    api_key: str | None = None,
) -> dict[str, Any] | None:
    """Metadata for one video, or None if the key is missing, the call fails, or the video is gone."""
    api_key = api_key if api_key is not None else get_youtube_api_key()
    if not api_key:
        logger.warning("[youtube] YOUTUBE_API_KEY not set; skipping enhancement for %s", video_id)
        return None
    try:
        response = await client.get(
            YOUTUBE_API_URL,
            params={"key": api_key, "part": "snippet,contentDetails,statistics,player", "id": video_id},
        )
        response.raise_for_status()
        items = response.json().get("items") or []
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("[youtube] Error fetching YouTube data for %s: %s", video_id, exc)
        return None
    if not items:
        logger.warning("[youtube] Video %s not found", video_id)
        return None
    return _shape_video(video_id, items[0])
