"""Reshape raw WordPress records into the richer API schema."""

from __future__ import annotations

from typing import Any

from services.wordpress import rendered

SITE_URL = "https://tiffycooks.com"

DEFAULT_AUTHOR: dict[str, Any] = {
    "name": "Tiffy Cooks",
    "avatar": f"{SITE_URL}/wp-content/uploads/2024/01/cropped-tiffy-cooks-logo-1.png",
    "social": [
        "https://www.youtube.com/@tiffyycooks",
        "https://www.tiktok.com/@tiffycooks",
        "https://www.instagram.com/tiffy.cooks/",
    ],
    "url": SITE_URL,
}

CATEGORY_ICONS = {
    # food types
    "appetizers": "utensils",
    "beef": "burger",
    "better-than-takeout": "shopping-bag",
    "breakfast": "sun",
    "dessert": "cake",
    "drinks": "coffee",
    "noodles": "noodles",
    "rice": "bowl-rice",
    "seafood": "fish",
    "snacks": "cookie",
    "soups": "soup",
    # regions
    "asia": "globe-asia",
    "americas": "globe-americas",
    "europe": "globe-europe",
}
DEFAULT_CATEGORY_ICON = "bookmark"


def merge_profile(defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Defaults overlaid with every override that is actually set (None/empty are ignored)."""
    merged = dict(defaults)
    merged.update({key: value for key, value in overrides.items() if value not in (None, "", [], {})})
    return merged


def _schema_graph(record: dict[str, Any]) -> list[dict[str, Any]]:
    return ((record.get("yoast_head_json") or {}).get("schema") or {}).get("@graph") or []


def _find_type(graph: list[dict[str, Any]], type_name: str) -> dict[str, Any] | None:
    return next((item for item in graph if item.get("@type") == type_name), None)


def extract_author(record: dict[str, Any]) -> dict[str, Any]:
    """Author from Yoast's Article schema, else its Organization, merged over DEFAULT_AUTHOR."""
    graph = _schema_graph(record)
    overrides: dict[str, Any] = {}
    article = _find_type(graph, "Article")
    article_author = (article or {}).get("author") or {}
    if article_author.get("name"):
        author_id = article_author.get("@id") or ""
        overrides = {
            "name": article_author["name"],
            "avatar": (article_author.get("image") or {}).get("url"),
            "url": author_id.replace("/#/schema/person/", "") if author_id else None,
        }
    else:
        organization = _find_type(graph, "Organization")
        if organization:
            overrides = {
                "name": organization.get("name"),
                "avatar": (organization.get("logo") or {}).get("url"),
                "social": organization.get("sameAs"),
                "url": organization.get("url"),
            }
    return {"id": record.get("author"), **merge_profile(DEFAULT_AUTHOR, overrides)}


def _terms(record: dict[str, Any], index: int) -> list[dict[str, Any]]:
    groups = (record.get("_embedded") or {}).get("wp:term") or []
    return groups[index] if len(groups) > index and groups[index] else []


def extract_categories(record: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {
            "id": cat.get("id"),
            "name": cat.get("name"),
            "slug": cat.get("slug"),
            "description": cat.get("description"),
            "link": cat.get("link"),
        }
        for cat in _terms(record, 0)
    ]


def extract_tags(record: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        {"id": tag.get("id"), "name": tag.get("name"), "slug": tag.get("slug"), "link": tag.get("link")}
        for tag in _terms(record, 1)
    ]


def extract_featured_media(record: dict[str, Any]) -> dict[str, Any] | None:
    media_list = (record.get("_embedded") or {}).get("wp:featuredmedia") or []
    if not media_list:
        return None
    media = media_list[0]
    details = media.get("media_details") or {}
    return {
        "id": media.get("id"),
        "title": rendered(media, "title"),
        "url": media.get("source_url"),
        "alt": media.get("alt_text"),
        "description": rendered(media, "description"),
        "caption": rendered(media, "caption"),
        "meta": {
            "width": details.get("width"),
            "height": details.get("height"),
            "sizes": details.get("sizes"),
        },
    }


def category_icon(category: dict[str, Any]) -> str:
    return CATEGORY_ICONS.get(category.get("slug") or "", DEFAULT_CATEGORY_ICON)


def _meta(record: dict[str, Any]) -> dict[str, Any]:
    meta = record.get("meta")
    return {**(meta if isinstance(meta, dict) else {}), "yoast": record.get("yoast_head_json") or {}}


def enrich_post(
    post: dict[str, Any],
    *,
    images: list[dict[str, Any]],
    videos: list[dict[str, Any]],
    recipe: dict[str, Any] | None,
    generated_video: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "id": post.get("id"),
        "title": rendered(post, "title"),
        "content": rendered(post, "content"),
        "excerpt": rendered(post, "excerpt"),
        "slug": post.get("slug"),
        "date": post.get("date"),
        "modified": post.get("modified"),
        "author": extract_author(post),
        "featuredMedia": extract_featured_media(post),
        "contentMedia": {
            "images": images,
            "videos": videos,
            "aiGeneratedFeaturedVideo": generated_video,
        },
        "recipe": recipe,
        "categories": extract_categories(post),
        "tags": extract_tags(post),
        "meta": _meta(post),
        "link": post.get("link"),
        "status": post.get("status"),
        "type": post.get("type"),
        "format": post.get("format"),
        "commentStatus": post.get("comment_status"),
        "pingStatus": post.get("ping_status"),
        "template": post.get("template"),
    }


def enrich_page(page: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": page.get("id"),
        "title": rendered(page, "title"),
        "content": rendered(page, "content"),
        "excerpt": rendered(page, "excerpt"),
        "slug": page.get("slug"),
        "date": page.get("date"),
        "modified": page.get("modified"),
        "author": extract_author(page),
        "featuredMedia": extract_featured_media(page),
        "parent": page.get("parent"),
        "menuOrder": page.get("menu_order"),
        "meta": _meta(page),
        "link": page.get("link"),
        "status": page.get("status"),
        "type": page.get("type"),
        "template": page.get("template"),
    }


def enrich_category(category: dict[str, Any]) -> dict[str, Any]:
    breadcrumb = _find_type(_schema_graph(category), "BreadcrumbList") or {}
    return {
        "id": category.get("id"),
        "name": category.get("name"),
        "slug": category.get("slug"),
        "description": category.get("description"),
        "count": category.get("count"),
        "link": category.get("link"),
        "parent": category.get("parent"),
        "icon": category_icon(category),
        "meta": {
            "breadcrumb": [
                {"name": item.get("name"), "path": item.get("item")}
                for item in breadcrumb.get("itemListElement") or []
            ],
            "yoast": category.get("yoast_head_json") or {},
        },
    }


def enrich_comment(comment: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": comment.get("id"),
        "post": comment.get("post"),
        "parent": comment.get("parent"),
        "author": {
            "name": comment.get("author_name"),
            "url": comment.get("author_url"),
            "avatar": comment.get("author_avatar_urls"),
        },
        "date": comment.get("date"),
        "content": rendered(comment, "content"),
        "status": comment.get("status"),
        "type": comment.get("type"),
        "link": comment.get("link"),
        "meta": comment.get("meta") or {},
    }
