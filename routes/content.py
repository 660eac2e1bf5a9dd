"""Content proxy: WordPress posts, pages, categories and comments in the enriched schema."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from app.deps import get_video_pipeline, get_wordpress_client
from services.content_extract import extract_images, extract_recipe, extract_videos
from services.enrich import enrich_category, enrich_comment, enrich_page, enrich_post
from services.video_pipeline import VideoPipeline
from services.wordpress import UNTITLED, WordPressClient, rendered
from services.youtube import get_enhanced_youtube_data

router = APIRouter(tags=["content"])
logger = logging.getLogger(__name__)


async def _build_post(
    post: dict[str, Any],
    *,
    client: WordPressClient,
    pipeline: VideoPipeline,
    generate_video: bool,
) -> dict[str, Any]:
    logger.info("[content] Processing post %s: %s", post.get("id"), rendered(post, "title"))
    html = rendered(post, "content")
    images = extract_images(html)
    youtube_ids, videos = extract_videos(html)
    enhanced = await asyncio.gather(*(get_enhanced_youtube_data(client.http, vid) for vid in youtube_ids))
    videos = [video for video in enhanced if video] + videos
    logger.info("[content] Found %d images and %d videos", len(images), len(videos))

    generated = None
    if generate_video and images:
        result = await pipeline.generate_for_item(
            images, rendered(post, "title") or UNTITLED, item_id=post.get("id")
        )
        generated = result.to_dict()

    return enrich_post(
        post,
        images=[image.to_dict() for image in images],
        videos=videos,
        recipe=extract_recipe(html),
        generated_video=generated,
    )


@router.get("/posts")
async def list_posts(
    per_page: int = Query(10, ge=1, le=100),
    generate_video: bool = Query(False, description="Render a slideshow video per post"),
    client: WordPressClient = Depends(get_wordpress_client),
    pipeline: VideoPipeline = Depends(get_video_pipeline),
) -> dict[str, Any]:
    logger.info("[content] Fetching posts (per_page=%d generate_video=%s)", per_page, generate_video)
    posts = await client.fetch_posts(per_page)
    enriched = await asyncio.gather(
        *(_build_post(post, client=client, pipeline=pipeline, generate_video=generate_video) for post in posts)
    )
    return {"count": len(enriched), "posts": list(enriched)}


@router.get("/pages")
async def list_pages(client: WordPressClient = Depends(get_wordpress_client)) -> dict[str, Any]:
    pages = [enrich_page(page) for page in await client.fetch_pages()]
    logger.info("[content] Found %d pages", len(pages))
    return {"count": len(pages), "pages": pages}


@router.get("/categories")
async def list_categories(client: WordPressClient = Depends(get_wordpress_client)) -> dict[str, Any]:
    categories = [enrich_category(category) for category in await client.fetch_categories()]
    logger.info("[content] Found %d categories", len(categories))
    return {"count": len(categories), "categories": categories}


@router.get("/comments")
async def list_comments(client: WordPressClient = Depends(get_wordpress_client)) -> dict[str, Any]:
    comments = [enrich_comment(comment) for comment in await client.fetch_comments()]
    logger.info("[content] Found %d comments", len(comments))
    return {"count": len(comments), "comments": comments}
