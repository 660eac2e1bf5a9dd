"""Turns the raw image list of one post into the ordered sequence that gets rendered."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from models import RawImage
from services.errors import SelectionError

logger = logging.getLogger(__name__)

MIN_DIMENSION = 300
# Markers WordPress puts in the file names of generated small variants.
THUMBNAIL_MARKERS = ("150x150", "300x", "-150x", "-300x", "-thumbnail")


def is_large_enough(image: RawImage) -> bool:
    """Unknown dimensions pass; a known side of MIN_DIMENSION or less fails."""
    if image.width is not None and image.width <= MIN_DIMENSION:
        return False
    if image.height is not None and image.height <= MIN_DIMENSION:
        return False
    return True


def is_full_size_url(url: str) -> bool:
    return bool(url) and not any(marker in url for marker in THUMBNAIL_MARKERS)


def file_name(url: str) -> str:
    return url.rsplit("/", 1)[-1]


def select_images(images: Iterable[RawImage]) -> list[RawImage]:
    """
    Dedupe (first URL wins), drop small images and thumbnail variants, and sort
    by file name. Raises SelectionError if nothing is left.
    """
    seen: set[str] = set()
    selected: list[RawImage] = []
    total = 0
    for index, image in enumerate(images):
        total += 1
        is_unique = image.url not in seen
        seen.add(image.url)
        large_enough = is_large_enough(image)
        full_size = is_full_size_url(image.url)
        keep = is_unique and large_enough and full_size
        logger.debug(
            "[selector] image %d url=%s unique=%s large_enough=%s full_size=%s keep=%s",
            index + 1,
            image.url,
            is_unique,
            large_enough,
            full_size,
            keep,
        )
        if keep:
            selected.append(image)

    if not selected:
        raise SelectionError(f"No valid images found after filtering ({total} candidates)")

    selected.sort(key=lambda img: file_name(img.url))
    logger.info("[selector] Selected %d of %d images", len(selected), total)
    for position, image in enumerate(selected, start=1):
        logger.info("[selector] %d. %s", position, image.url)
    return selected
