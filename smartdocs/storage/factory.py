"""
Storage backend selection from STORAGE_BACKEND
"""

import logging
from typing import Optional

from smartdocs.config import settings
from smartdocs.storage.base import StorageBackend
from smartdocs.storage.local import LocalStorage

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("local", "s3")


def _s3_options() -> dict:
    """S3Storage keyword arguments, leaving out blank settings so boto3 falls back to env/IAM"""
    options = {
        "aws_access_key_id": settings.S3_ACCESS_KEY_ID,
        "aws_secret_access_key": settings.S3_SECRET_ACCESS_KEY,
        "region_name": settings.S3_REGION,
        "endpoint_url": settings.S3_ENDPOINT_URL,
    }
    return {key: value for key, value in options.items() if value}


def get_storage_backend(backend_type: Optional[str] = None) -> StorageBackend:
    """
    Storage for feedback screenshots and attachments

    Args:
        backend_type: "local" or "s3"; defaults to settings.STORAGE_BACKEND

    Raises:
        ValueError: for any other backend name
    """
    backend_type = (backend_type or settings.STORAGE_BACKEND).lower()
    if backend_type not in STORAGE_BACKENDS:
        raise ValueError(f"Invalid STORAGE_BACKEND: {backend_type}. Must be one of {', '.join(STORAGE_BACKENDS)}")

    if backend_type == "s3":
        # boto3 is only imported when S3 is configured
        from smartdocs.storage.s3 import S3Storage

        logger.info(f"Feedback files go to S3 bucket {settings.S3_BUCKET_NAME}")
        return S3Storage(bucket_name=settings.S3_BUCKET_NAME, **_s3_options())

    logger.info(f"Feedback files go to {settings.UPLOAD_DIR}")
    return LocalStorage(base_path=settings.UPLOAD_DIR)
