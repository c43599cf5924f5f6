"""
Media storage adapters.

Uploaded images are kept per user and organized by month:
``{base_path}/media/{user_id}/YYYY/MM/{name}_{timestamp}{ext}``.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageError(Exception):
    """Raised when a file cannot be written to or removed from storage."""

    pass


class InvalidMediaError(Exception):
    """Raised for uploads with a disallowed type, bad content or excess size."""

    pass


def _sniff_matches(content_type: str, data: bytes) -> bool:
    """Check that the leading bytes agree with the declared image type."""
    if content_type == "image/png":
        return data.startswith(b"\x89PNG\r\n\x1a\n")
    if content_type == "image/jpeg":
        return data.startswith(b"\xff\xd8\xff")
    if content_type == "image/gif":
        return data.startswith((b"GIF87a", b"GIF89a"))
    if content_type == "image/webp":
        return data[:4] == b"RIFF" and data[8:12] == b"WEBP"
    if content_type == "image/svg+xml":
        head = data[:1024].lstrip().lower()
        return head.startswith(b"<svg") or head.startswith(b"<?xml")
    return False


def validate_upload(content_type: Optional[str], data: bytes, max_bytes: Optional[int] = None) -> str:
    """
    Validate an uploaded image and return its normalized content type.

    Raises:
        InvalidMediaError: Disallowed type, empty or oversized file, or
            content that does not match the declared type.
    """
    max_bytes = max_bytes or settings.media_max_bytes
    content_type = (content_type or "").split(";")[0].strip().lower()

    if content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidMediaError(
            f"Unsupported file type '{content_type or 'unknown'}'. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}"
        )
    if not data:
        raise InvalidMediaError("File is empty")
    if len(data) > max_bytes:
        raise InvalidMediaError(f"File exceeds the {max_bytes // (1024 * 1024)} MB limit")
    if not _sniff_matches(content_type, data):
        raise InvalidMediaError("File content does not match its declared type")
    return content_type


class StorageAdapter(ABC):
    """Abstract base class for storage adapters."""

    @abstractmethod
    async def save(self, data: bytes, filename: str, user_id: str, content_type: str) -> str:
        """
        Store a file for a user.

        Returns:
            Storage-relative path of the saved file
        """

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Remove a stored file. Returns False when it did not exist."""

    @abstractmethod
    def public_url(self, path: str) -> str:
        """URL the file is served from."""


class LocalStorageAdapter(StorageAdapter):
    """
    Local filesystem storage adapter.

    Files under ``base_path`` are served by the app at ``/uploads``.
    """

    def __init__(self, base_path: Optional[str] = None, url_prefix: str = "/uploads"):
        self.base_path = Path(base_path or settings.storage_local_path)
        self.url_prefix = url_prefix.rstrip("/")

    def _get_user_path(self, user_id: str) -> Path:
        """media/<user_id>/YYYY/MM"""
        now = datetime.now()
        safe_user = _UNSAFE_NAME_CHARS.sub("_", user_id)
        return Path("media") / safe_user / str(now.year) / f"{now.month:02d}"

    def _sanitize_filename(self, filename: str, content_type: str) -> str:
        """
        Strip path components and unsafe characters, force the extension
        to match the content type, and add a timestamp to avoid collisions.
        """
        name = os.path.basename(filename.replace("\\", "/"))
        stem = os.path.splitext(name)[0]
        stem = _UNSAFE_NAME_CHARS.sub("_", stem).strip("._")[:80] or "upload"
        ext = ALLOWED_CONTENT_TYPES.get(content_type, ".bin")
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return f"{stem}_{timestamp}{ext}"

    def _resolve(self, path: str) -> Path:
        base = self.base_path.resolve()
        full = (base / path).resolve()
        if not full.is_relative_to(base):
            raise StorageError(f"Path escapes storage root: {path}")
        return full

    async def save(self, data: bytes, filename: str, user_id: str, content_type: str) -> str:
        relative_dir = self._get_user_path(user_id)
        safe_name = self._sanitize_filename(filename, content_type)
        full_dir = self.base_path / relative_dir

        try:
            full_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(full_dir / safe_name, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error("Failed to save media for user %s: %s", user_id, e)
            raise StorageError("Could not store file") from e

        relative_path = (relative_dir / safe_name).as_posix()
        logger.info("Saved media to local storage: %s (%d bytes)", relative_path, len(data))
        return relative_path

    async def delete(self, path: str) -> bool:
        file_path = self._resolve(path)
        if not file_path.exists():
            logger.warning("Media not found for deletion: %s", path)
            return False
        try:
            await aiofiles.os.remove(file_path)
        except OSError as e:
            logger.error("Failed to delete media %s: %s", path, e)
            raise StorageError("Could not delete file") from e
        logger.info("Deleted media from local storage: %s", path)
        return True

    def public_url(self, path: str) -> str:
        return f"{self.url_prefix}/{path}"


_storage_adapter: StorageAdapter | None = None


def get_storage_adapter() -> StorageAdapter:
    global _storage_adapter
    if _storage_adapter is None:
        _storage_adapter = LocalStorageAdapter()
    return _storage_adapter
