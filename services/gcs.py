"""GCS upload and signed URL generation for generated reels."""

import asyncio
import logging
import os
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "recipe-reels-media"
REEL_PREFIX = "reels"
REEL_EXPIRATION_SECONDS = 7 * 24 * 3600  # V4 signed URLs max out at 7 days


def get_bucket_name() -> str:
    """Bucket name from env or default."""
    return os.environ.get("GCS_BUCKET", "").strip() or DEFAULT_BUCKET


def use_public_urls() -> bool:
    return os.environ.get("GCS_PUBLIC_URLS", "").strip().lower() in ("1", "true", "yes")


def upload_blob(
    blob_name: str,
    data: bytes,
    *,
    bucket_name: str | None = None,
    content_type: str = "video/mp4",
) -> str:
    """
    Upload raw bytes to a GCS object and return the object's public URL.

    :param blob_name: Object path in bucket, e.g. "reels/garlic-noodles-1700000000000.mp4"
    :param data: Raw bytes to upload
    :param bucket_name: GCS bucket; default from GCS_BUCKET env or DEFAULT_BUCKET
    """
    from google.cloud import storage

    bucket_name = bucket_name or get_bucket_name()
    client = storage.Client()
    bucket = client.bucket(bucket_name)
    blob = bucket.blob(blob_name)
    blob.upload_from_string(data, content_type=content_type)
    return blob.public_url


def generate_signed_url(
    blob_name: str,
    *,
    bucket_name: str | None = None,
    expiration_seconds: int = REEL_EXPIRATION_SECONDS,
    method: str = "GET",
):
    """
    Generate a V4 signed URL for a GCS object.

    Uses default credentials (GOOGLE_APPLICATION_CREDENTIALS or ADC).

    :param blob_name: Object path in bucket, e.g. "reels/abc.mp4"
    :param expiration_seconds: URL validity in seconds
    :param method: HTTP method for the signed URL ("GET" for download)
    """
    from google.cloud import storage

    bucket_name = bucket_name or get_bucket_name()
    client = storage.Client()
    bucket = client.bucket(bucket_name)
    blob = bucket.blob(blob_name)
    expiration = datetime.now(timezone.utc) + timedelta(seconds=expiration_seconds)
    return blob.generate_signed_url(
        expiration=expiration,
        method=method,
        version="v4",
    )


def _store_video_sync(data: bytes, filename: str) -> str:
    blob_name = f"{REEL_PREFIX}/{filename}"
    public_url = upload_blob(blob_name, data)
    logger.info("[gcs] Uploaded %d bytes to %s", len(data), blob_name)
    if use_public_urls():
        return public_url
    return generate_signed_url(blob_name)


async def store_video(data: bytes, filename: str) -> str | None:
    """Upload a finished video; returns its URL, or None if the upload failed."""
    try:
        return await asyncio.to_thread(_store_video_sync, data, filename)
    except Exception as exc:  # noqa: BLE001
        logger.error("[gcs] Upload of %s failed: %s", filename, exc, exc_info=True)
        return None
