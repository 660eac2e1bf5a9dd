"""Stream remote images into a pipeline run's working directory."""

from __future__ import annotations

import logging
import os
from urllib.parse import urlsplit

import httpx

from services.errors import DownloadError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"


def image_extension(url: str) -> str:
    ext = os.path.splitext(urlsplit(url).path)[1].lower()
    return ext or DEFAULT_EXTENSION


async def download_image(client: httpx.AsyncClient, url: str, path: str) -> str:
    """Download `url` to `path`. Raises DownloadError on any HTTP or I/O failure."""
    try:
        async with client.stream("GET", url, follow_redirects=True) as response:
            response.raise_for_status()
            with open(path, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
    except httpx.HTTPError as exc:
        raise DownloadError(f"Failed to download {url}: {exc}") from exc
    except OSError as exc:
        raise DownloadError(f"Failed to write {path}: {exc}") from exc
    logger.debug("[downloader] %s -> %s", url, path)
    return path
