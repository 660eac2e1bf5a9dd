from .gcs import generate_signed_url, get_bucket_name, store_video

__all__ = ["generate_signed_url", "get_bucket_name", "store_video"]
