"""Pull images, embedded videos and recipe cards out of rendered WordPress HTML."""

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup, Tag

from models import RawImage
from models.image import parse_dimension
from services.youtube import extract_youtube_video_id

EMBED_HOSTS = ("vimeo.com", "tiktok.com")


def _soup(html: str | None) -> BeautifulSoup | None:
    if not html:
        return None
    return BeautifulSoup(html, "html.parser")


def _text(node: Tag | None) -> str | None:
    if node is None:
        return None
    return node.get_text(strip=True) or None


def _attr(node: Tag, name: str) -> str:
    value = node.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def extract_images(html: str | None) -> list[RawImage]:
    """Every <img> in document order; absent or non-numeric dimensions become None."""
    soup = _soup(html)
    if soup is None:
        return []
    return [
        RawImage(
            url=_attr(img, "src"),
            alt=_attr(img, "alt"),
            title=_attr(img, "title"),
            width=parse_dimension(img.get("width")),
            height=parse_dimension(img.get("height")),
            caption=_attr(img, "data-caption"),
        )
        for img in soup.find_all("img")
    ]


def extract_videos(html: str | None) -> tuple[list[str], list[dict[str, Any]]]:
    """
    Returns (youtube_ids, other_videos). YouTube iframes are returned as ids so
    the caller can enrich them; Vimeo/TikTok iframes and <video> tags are
    returned as plain dicts.
    """
    soup = _soup(html)
    if soup is None:
        return [], []
    youtube_ids: list[str] = []
    videos: list[dict[str, Any]] = []
    for node in soup.find_all(["video", "iframe"]):
        src = _attr(node, "src")
        if node.name == "iframe":
            if "youtube.com" in src or "youtu.be" in src:
                video_id = extract_youtube_video_id(src)
                if video_id:
                    youtube_ids.append(video_id)
            elif any(host in src for host in EMBED_HOSTS):
                videos.append(
                    {
                        "type": "embed",
                        "url": src,
                        "width": parse_dimension(node.get("width")),
                        "height": parse_dimension(node.get("height")),
                        "title": _attr(node, "title"),
                    }
                )
        else:
            videos.append(
                {
                    "type": "video",
                    "url": src,
                    "poster": _attr(node, "poster") or None,
                    "width": parse_dimension(node.get("width")),
                    "height": parse_dimension(node.get("height")),
                }
            )
    return youtube_ids, videos


def extract_recipe(html: str | None) -> dict[str, Any] | None:
    """Structured data from a WP Recipe Maker card, or None when the post has none."""
    soup = _soup(html)
    if soup is None:
        return None
    card = soup.select_one(".wprm-recipe-container")
    if card is None:
        return None

    def field(selector: str, root: Tag = card) -> str | None:
        return _text(root.select_one(selector))

    keywords = field(".wprm-recipe-keyword")
    ingredients = [
        {
            "amount": field(".wprm-recipe-ingredient-amount", item),
            "unit": field(".wprm-recipe-ingredient-unit", item),
            "name": field(".wprm-recipe-ingredient-name", item),
            "notes": field(".wprm-recipe-ingredient-notes", item),
        }
        for item in card.select(".wprm-recipe-ingredient")
    ]
    instructions = []
    for step in card.select(".wprm-recipe-instruction"):
        image = step.select_one(".wprm-recipe-instruction-image img")
        instructions.append(
            {
                "text": field(".wprm-recipe-instruction-text", step),
                "image": (_attr(image, "src") or None) if image is not None else None,
            }
        )
    return {
        "name": field(".wprm-recipe-name"),
        "summary": field(".wprm-recipe-summary"),
        "meta": {
            "activeTime": field(".wprm-recipe-cook_time"),
            "totalTime": field(".wprm-recipe-total_time"),
            "course": field(".wprm-recipe-course"),
            "cuisine": field(".wprm-recipe-cuisine"),
            "diet": field(".wprm-recipe-suitablefordiet"),
            "keywords": [k.strip() for k in keywords.split(",")] if keywords else None,
        },
        "ingredients": ingredients,
        "instructions": instructions,
    }
