"""Tests for storage providers and object key helpers."""

import time
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest

from pintag.settings import Settings
from pintag.storage import (
    GCSStorageProvider,
    LocalStorageProvider,
    StorageError,
    create_storage_provider,
    derivative_key,
    key_from_url,
    original_key,
)


def test_key_helpers():
    assert original_key("abc123XYZ_", ".JPG") == "images/abc123XYZ_/original.jpg"
    assert original_key("abc", "png") == "images/abc/original.png"
    assert derivative_key("abc", "thumbnail") == "images/abc/thumbnail.webp"
    assert derivative_key("abc", "card") == "images/abc/card.webp"


class TestKeyFromUrl:

    def test_strips_host_and_leading_slash(self):
        url = "https://bucket.s3.amazonaws.com/images/abc/original.jpg"
        assert key_from_url(url) == "images/abc/original.jpg"

    def test_ignores_query_string(self):
        assert key_from_url("/images/abc/card.webp?x=1") == "images/abc/card.webp"

    def test_bare_key(self):
        assert key_from_url("images/abc/card.webp") == "images/abc/card.webp"

    def test_decodes_escapes(self):
        assert key_from_url("https://host/images/my%20file.jpg") == "images/my file.jpg"

    @pytest.mark.parametrize("url", ["", "   ", None, "https://host/"])
    def test_rejects_empty(self, url):
        with pytest.raises(ValueError):
            key_from_url(url)


class TestLocalStorageProvider:

    def test_put_get_delete(self, storage):
        storage.put("images/a/original.jpg", b"data")
        assert storage.exists("images/a/original.jpg")
        assert storage.get("images/a/original.jpg") == b"data"

        storage.delete("images/a/original.jpg")
        assert not storage.exists("images/a/original.jpg")
        # deleting twice is fine
        storage.delete("images/a/original.jpg")

    def test_missing_object(self, storage):
        with pytest.raises(StorageError):
            storage.get("images/missing.jpg")

    def test_rejects_path_escape(self, storage):
        with pytest.raises(StorageError):
            storage.put("../outside.txt", b"x")

    def test_signed_url_round_trip(self, storage):
        storage.put("images/a/card.webp", b"x")
        url = storage.signed_url("images/a/card.webp", 60)
        parsed = urlparse(url)
        params = parse_qs(parsed.query)

        assert parsed.path == "/api/v1/media/files/images/a/card.webp"
        assert storage.verify_signature("images/a/card.webp", int(params["expires"][0]), params["signature"][0])
        assert not storage.verify_signature("images/b/card.webp", int(params["expires"][0]), params["signature"][0])

    def test_expired_signature(self, storage):
        expired = int(time.time()) - 5
        signature = storage._signature("k", expired)
        assert not storage.verify_signature("k", expired, signature)

    def test_delete_many_skips_empty_keys(self, storage):
        storage.put("a.txt", b"1")
        storage.delete_many(["a.txt", None, ""])
        assert not storage.exists("a.txt")


class TestGCSStorageProvider:

    def _provider(self):
        client = MagicMock()
        bucket = client.bucket.return_value
        return GCSStorageProvider(bucket_name="pintag-test", client=client), client, bucket

    def test_requires_bucket(self):
        with pytest.raises(ValueError):
            GCSStorageProvider(bucket_name="", client=MagicMock())

    def test_put_uploads_with_content_type(self):
        provider, client, bucket = self._provider()
        provider.put("images/a/card.webp", b"x", "image/webp")

        client.bucket.assert_called_once_with("pintag-test")
        bucket.blob.assert_called_with("images/a/card.webp")
        bucket.blob.return_value.upload_from_string.assert_called_once_with(b"x", content_type="image/webp")

    def test_signed_url_is_v4_get(self):
        provider, _, bucket = self._provider()
        bucket.blob.return_value.generate_signed_url.return_value = "https://signed"

        assert provider.signed_url("images/a/original.jpg", 3600) == "https://signed"
        kwargs = bucket.blob.return_value.generate_signed_url.call_args.kwargs
        assert kwargs["version"] == "v4"
        assert kwargs["method"] == "GET"
        assert kwargs["expiration"].total_seconds() == 3600

    def test_signing_failure_becomes_storage_error(self):
        provider, _, bucket = self._provider()
        bucket.blob.return_value.generate_signed_url.side_effect = AttributeError("no private key")
        with pytest.raises(StorageError):
            provider.signed_url("k")


def test_create_storage_provider_local(tmp_path):
    config = Settings(storage_backend="local", local_storage_dir=str(tmp_path / "m"))
    provider = create_storage_provider(config)
    assert isinstance(provider, LocalStorageProvider)
    assert provider.root == (tmp_path / "m").resolve()


def test_create_storage_provider_unknown():
    with pytest.raises(ValueError):
        create_storage_provider(Settings(storage_backend="ftp"))
