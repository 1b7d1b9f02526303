"""Storage provider abstractions."""

from .providers import (
    StorageError,
    StorageProvider,
    LocalStorageProvider,
    GCSStorageProvider,
    create_storage_provider,
    get_storage_provider,
    key_from_url,
    original_key,
    derivative_key,
)

__all__ = [
    "StorageError",
    "StorageProvider",
    "LocalStorageProvider",
    "GCSStorageProvider",
    "create_storage_provider",
    "get_storage_provider",
    "key_from_url",
    "original_key",
    "derivative_key",
]
