"""
Abstract base class for storage backends
Defines the interface for file storage systems (local, S3, etc.)
"""

import re
from abc import ABC, abstractmethod
from typing import BinaryIO, Union, Optional


def clean_filename(filename: str) -> str:
    """Strip directories and characters that are unsafe in paths and object keys"""
    name = (filename or "file").replace("\\", "/").split("/")[-1]
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name).lstrip(".")
    return name or "file"


class StorageBackend(ABC):
    """Abstract base class for file storage backends"""

    @staticmethod
    def build_key(prefix: str, filename: str) -> str:
        """Storage key for a file, e.g. feedback/<feedback_id>/screenshot.png"""
        return f"{prefix.strip('/')}/{clean_filename(filename)}"

    @abstractmethod
    def save(
        self,
        file: Union[BinaryIO, bytes],
        prefix: str,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        """
        Save file under a prefix

        Args:
            file: File object or bytes to save
            prefix: Folder-like prefix (e.g. "feedback/feedback_123")
            filename: Original filename (sanitized before use)
            content_type: MIME type (optional)

        Returns:
            str: Storage path/key for the saved file
        """
        pass

    @abstractmethod
    def get_url(self, storage_path: str, expires_in: int = 3600) -> str:
        """
        Get accessible URL for stored file

        Returns:
            str: Accessible URL (local file URL or pre-signed S3 URL)
        """
        pass

    @abstractmethod
    def read(self, storage_path: str) -> bytes:
        pass

    @abstractmethod
    def delete(self, storage_path: str):
        pass

    @abstractmethod
    def delete_prefix(self, prefix: str):
        """Delete every file stored under a prefix"""
        pass

    @abstractmethod
    def exists(self, storage_path: str) -> bool:
        pass
