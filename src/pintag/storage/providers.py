"""Object storage providers for image originals and derivatives."""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode, urlparse, unquote

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """A storage backend operation failed."""


def original_key(media_id: str, extension: str) -> str:
    ext = extension.lower() if extension else ""
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return f"images/{media_id}/original{ext}"


def derivative_key(media_id: str, variant: str) -> str:
    return f"images/{media_id}/{variant}.webp"


def key_from_url(url: Optional[str]) -> str:
    """Return the object key addressed by a media URL.

    The key is the URL path without its leading slash. Bare keys are returned
    unchanged.
    """
    if not url or not url.strip():
        raise ValueError("url is required")
    parsed = urlparse(url.strip())
    key = unquote(parsed.path).lstrip("/")
    if not key:
        raise ValueError(f"No object key in url: {url}")
    return key


class StorageProvider(ABC):
    """Abstract object storage contract."""

    provider_name: str

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def exists(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def signed_url(self, key: str, expires_seconds: int = 3600) -> str:
        raise NotImplementedError

    def delete_many(self, keys) -> None:
        """Best-effort removal of several objects; failures are logged."""
        for key in keys:
            if not key:
                continue
            try:
                self.delete(key)
            except StorageError:
                logger.warning("Failed to delete storage object %s", key)


class LocalStorageProvider(StorageProvider):
    """Objects stored as files below a root directory."""

    provider_name = "local"

    def __init__(self, root: str | Path, *, secret_key: str = "", base_url: str = "/api/v1/media/files"):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self._secret = (secret_key or "").encode("utf-8")
        self.base_url = base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Object not found: {key}") from exc
        except OSError as exc:
            raise StorageError(f"Failed to read {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def _signature(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def signed_url(self, key: str, expires_seconds: int = 3600) -> str:
        expires = int(time.time()) + max(1, int(expires_seconds))
        query = urlencode({"expires": expires, "signature": self._signature(key, expires)})
        return f"{self.base_url}/{key}?{query}"

    def verify_signature(self, key: str, expires: int, signature: str) -> bool:
        if int(expires) < int(time.time()):
            return False
        return hmac.compare_digest(self._signature(key, int(expires)), signature or "")


class GCSStorageProvider(StorageProvider):
    """Objects stored in a Google Cloud Storage bucket."""

    provider_name = "gcs"

    def __init__(self, *, bucket_name: str, project_id: Optional[str] = None, client: Optional[Any] = None):
        if not bucket_name:
            raise ValueError("GCSStorageProvider requires a storage bucket name")

        if client is None:
            from google.cloud import storage

            client = storage.Client(project=project_id) if project_id else storage.Client()

        self._bucket = client.bucket(bucket_name)

    def put(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        from google.api_core.exceptions import GoogleAPIError

        blob = self._bucket.blob(key)
        try:
            blob.upload_from_string(data, content_type=content_type or "application/octet-stream")
        except GoogleAPIError as exc:
            raise StorageError(f"Failed to upload {key}: {exc}") from exc

    def get(self, key: str) -> bytes:
        from google.api_core.exceptions import GoogleAPIError, NotFound

        blob = self._bucket.blob(key)
        try:
            return blob.download_as_bytes()
        except NotFound as exc:
            raise StorageError(f"Object not found: {key}") from exc
        except GoogleAPIError as exc:
            raise StorageError(f"Failed to download {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        from google.api_core.exceptions import GoogleAPIError, NotFound

        try:
            self._bucket.blob(key).delete()
        except NotFound:
            return
        except GoogleAPIError as exc:
            raise StorageError(f"Failed to delete {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        return bool(self._bucket.blob(key).exists())

    def signed_url(self, key: str, expires_seconds: int = 3600) -> str:
        blob = self._bucket.blob(key)
        ttl_seconds = max(60, int(expires_seconds or 3600))
        try:
            return blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=ttl_seconds),
                method="GET",
            )
        except Exception as exc:
            # Signing needs service-account credentials; surface as a storage failure.
            raise StorageError(f"Failed to sign url for {key}: {exc}") from exc


def create_storage_provider(config: Any) -> StorageProvider:
    """Instantiate the storage provider configured in ``config``."""

    normalized = (config.storage_backend or "local").strip().lower()
    if normalized == "local":
        return LocalStorageProvider(
            config.local_storage_dir,
            secret_key=config.auth_secret_key,
        )

    if normalized in {"gcs", "managed"}:
        return GCSStorageProvider(
            bucket_name=config.storage_bucket_name,
            project_id=config.gcp_project_id,
        )

    raise ValueError(f"Unsupported storage backend: {config.storage_backend}")


_provider: Optional[StorageProvider] = None


def get_storage_provider() -> StorageProvider:
    """FastAPI dependency returning the process-wide storage provider."""
    global _provider
    if _provider is None:
        from pintag.settings import settings

        _provider = create_storage_provider(settings)
    return _provider
