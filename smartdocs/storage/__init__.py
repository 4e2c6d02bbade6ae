"""
File storage system
Supports both local filesystem and S3-compatible storage
"""

from smartdocs.storage.base import StorageBackend
from smartdocs.storage.local import LocalStorage
from smartdocs.storage.factory import get_storage_backend

__all__ = [
    "StorageBackend",
    "LocalStorage",
    "get_storage_backend",
]
