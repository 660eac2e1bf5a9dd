"""Async client for the upstream WordPress REST API."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from typing import Any

import httpx

from models import CatalogItem
from services.content_extract import extract_images

logger = logging.getLogger(__name__)

DEFAULT_WORDPRESS_API_URL = "https://tiffycooks.com/wp-json/wp/v2"
DEFAULT_PAGE_SIZE = 100
TOTAL_PAGES_HEADER = "x-wp-totalpages"
UNTITLED = "Untitled Post"


def get_wordpress_api_url() -> str:
    return (os.environ.get("WORDPRESS_API_URL", "").strip() or DEFAULT_WORDPRESS_API_URL).rstrip("/")


class UpstreamError(Exception):
    """The content source failed or answered with something unusable."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def rendered(obj: dict[str, Any], key: str) -> str | None:
    """WordPress wraps text fields as {"rendered": "..."}."""
    value = obj.get(key)
    if isinstance(value, dict):
        return value.get("rendered")
    return value


def post_to_catalog_item(post: dict[str, Any]) -> CatalogItem | None:
    """None for a record without an id."""
    if post.get("id") is None:
        return None
    return CatalogItem(
        id=post["id"],
        title=rendered(post, "title") or UNTITLED,
        images=extract_images(rendered(post, "content")),
    )


class WordPressClient:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = (base_url or get_wordpress_api_url()).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, resource: str, params: dict[str, Any]) -> httpx.Response:
        url = f"{self._base_url}/{resource}"
        try:
            response = await self._client.get(url, params=params)
        except httpx.RequestError as exc:
            raise UpstreamError(502, f"Request to {url} failed: {exc}") from exc
        if response.is_error:
            raise UpstreamError(response.status_code, f"{url} returned HTTP {response.status_code}")
        return response

    async def _get_list(self, resource: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        response = await self._get(resource, params)
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(502, f"Expected JSON from {resource}: {exc}") from exc
        if not isinstance(data, list):
            raise UpstreamError(502, f"Expected an array of {resource} from WordPress API")
        return data

    async def list_posts(self, page: int, per_page: int = DEFAULT_PAGE_SIZE) -> tuple[list[dict[str, Any]], int]:
        """
        One page of posts, newest first, plus the total page count.

        WordPress answers 400 for a page past the end; that is reported as
        ([], 0) so callers can stop cleanly.
        """
        params = {"_embed": "true", "per_page": per_page, "page": page, "orderby": "date", "order": "desc"}
        try:
            response = await self._get("posts", params)
        except UpstreamError as exc:
            if exc.status_code == 400:
                logger.info("[wordpress] Page %d is past the end of the catalog", page)
                return [], 0
            raise
        try:
            posts = response.json()
        except ValueError as exc:
            raise UpstreamError(502, f"Expected JSON from posts: {exc}") from exc
        if not isinstance(posts, list):
            raise UpstreamError(502, "Expected an array of posts from WordPress API")
        try:
            total_pages = int(response.headers.get(TOTAL_PAGES_HEADER, page))
        except ValueError:
            total_pages = page
        return posts, total_pages

    async def iter_posts(self, per_page: int = DEFAULT_PAGE_SIZE) -> AsyncIterator[dict[str, Any]]:
        """Every post in the catalog, page by page, fetching lazily."""
        page = 1
        while True:
            posts, total_pages = await self.list_posts(page, per_page)
            logger.info("[wordpress] Page %d/%d: %d posts", page, total_pages, len(posts))
            for post in posts:
                yield post
            if not posts or page >= total_pages:
                return
            page += 1

    async def iter_catalog(self, per_page: int = DEFAULT_PAGE_SIZE) -> AsyncIterator[CatalogItem]:
        async for post in self.iter_posts(per_page):
            item = post_to_catalog_item(post)
            if item is None:
                logger.warning("[wordpress] Skipping post without an id: %s", rendered(post, "title"))
                continue
            yield item

    async def fetch_posts(self, per_page: int = 10) -> list[dict[str, Any]]:
        return await self._get_list(
            "posts", {"_embed": "true", "per_page": per_page, "orderby": "date", "order": "desc"}
        )

    async def fetch_pages(self) -> list[dict[str, Any]]:
        return await self._get_list(
            "pages", {"_embed": "true", "per_page": 100, "orderby": "menu_order", "order": "asc"}
        )

    async def fetch_categories(self) -> list[dict[str, Any]]:
        return await self._get_list("categories", {"per_page": 100, "orderby": "count", "order": "desc"})

    async def fetch_comments(self) -> list[dict[str, Any]]:
        return await self._get_list("comments", {"per_page": 100, "orderby": "date", "order": "desc"})
