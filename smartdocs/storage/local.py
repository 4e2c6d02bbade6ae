"""
Local file storage
Implements StorageBackend interface for local filesystem
"""

import shutil
from pathlib import Path
from typing import BinaryIO, Union, Optional
from smartdocs.config import settings
from smartdocs.storage.base import StorageBackend


class LocalStorage(StorageBackend):
    """Local file storage rooted at UPLOAD_DIR"""

    def __init__(self, base_path: str = settings.UPLOAD_DIR):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, storage_path: str) -> Path:
        """Absolute path for a key, refusing anything outside base_path"""
        normalized_path = storage_path.replace('\\', '/')
        absolute_path = (self.base_path / normalized_path).resolve()
        try:
            absolute_path.relative_to(self.base_path)
        except ValueError:
            raise PermissionError(f"Access denied: {storage_path} is outside the storage root")
        return absolute_path

    def save(
        self,
        file: Union[BinaryIO, bytes],
        prefix: str,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        key = self.build_key(prefix, filename)
        file_path = self._resolve(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        if isinstance(file, bytes):
            content = file
        else:
            content = file.read()
            # Reset file pointer if possible
            if hasattr(file, 'seek'):
                file.seek(0)

        with open(file_path, "wb") as f:
            f.write(content)

        return key

    def get_url(self, storage_path: str, expires_in: int = 3600) -> str:
        absolute_path = self._resolve(storage_path)
        if not absolute_path.exists():
            raise FileNotFoundError(f"File not found: {storage_path}")
        return f"file://{absolute_path}"

    def read(self, storage_path: str) -> bytes:
        with open(self._resolve(storage_path), "rb") as f:
            return f.read()

    def exists(self, storage_path: str) -> bool:
        try:
            return self._resolve(storage_path).exists()
        except PermissionError:
            return False

    def delete(self, storage_path: str):
        absolute_path = self._resolve(storage_path)
        if absolute_path.exists():
            absolute_path.unlink()

    def delete_prefix(self, prefix: str):
        folder = self._resolve(prefix)
        if folder.exists() and folder.is_dir() and folder != self.base_path:
            shutil.rmtree(folder)
