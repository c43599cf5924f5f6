"""Storage adapters for uploaded media."""

from .media_storage import (
    ALLOWED_CONTENT_TYPES,
    InvalidMediaError,
    LocalStorageAdapter,
    StorageAdapter,
    StorageError,
    get_storage_adapter,
    validate_upload,
)

__all__ = [
    "ALLOWED_CONTENT_TYPES",
    "StorageAdapter",
    "LocalStorageAdapter",
    "StorageError",
    "InvalidMediaError",
    "get_storage_adapter",
    "validate_upload",
]
