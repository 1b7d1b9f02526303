"""Tests for core image endpoints, uploads and file serving.

- GET/POST /api/v1/images
- GET /api/v1/images/random
- GET/PATCH/DELETE /api/v1/images/{id}
- GET /api/v1/images/{id}/content
- GET /api/v1/media/signed-url
- POST/GET /api/v1/user-uploads
"""

import asyncio
import io

import pytest
from fastapi import HTTPException
from PIL import Image as PILImage

from pintag.metadata import Comment, Image, ImageTag
from pintag.routers.images.core import get_image, get_random_image, list_images
from pintag.routers.images.file_serving import get_signed_url
from pintag.settings import settings


def _upload(client, headers, data, filename="photo.jpg", content_type="image/jpeg", path="/api/v1/images", **form):
    return client.post(path, files={"file": (filename, data, content_type)}, data=form, headers=headers)


class TestUpload:

    def test_admin_upload_stores_original_and_derivatives(self, client, admin, auth_headers, sample_image_data, storage, test_db):
        response = _upload(client, auth_headers(admin), sample_image_data, alt="Red square")
        assert response.status_code == 201, response.text
        body = response.json()

        assert len(body["media_id"]) == 10
        assert body["alt"] == "Red square"
        assert (body["width"], body["height"]) == (100, 80)
        assert body["is_user_upload"] is False

        image = test_db.query(Image).filter(Image.id == body["id"]).one()
        assert storage.get(image.storage_key) == sample_image_data
        thumb = PILImage.open(io.BytesIO(storage.get(image.thumbnail_key)))
        card = PILImage.open(io.BytesIO(storage.get(image.card_key)))
        assert thumb.size == settings.thumbnail_size
        assert card.size == settings.card_size

    def test_regular_user_cannot_upload_to_catalog(self, client, user, auth_headers, sample_image_data):
        response = _upload(client, auth_headers(user), sample_image_data)
        assert response.status_code == 403

    def test_missing_file(self, client, admin, auth_headers):
        response = client.post("/api/v1/images", headers=auth_headers(admin))
        assert response.status_code == 400

    def test_empty_file(self, client, admin, auth_headers):
        response = _upload(client, auth_headers(admin), b"")
        assert response.status_code == 400

    def test_not_an_image(self, client, admin, auth_headers, storage):
        response = _upload(client, auth_headers(admin), b"plain text pretending", filename="fake.jpg")
        assert response.status_code == 400
        assert not any(storage.root.rglob("*.*"))

    def test_unsupported_extension(self, client, admin, auth_headers, sample_image_data):
        response = _upload(client, auth_headers(admin), sample_image_data, filename="doc.pdf", content_type="application/pdf")
        assert response.status_code == 400

    def test_oversized_dimensions(self, client, admin, auth_headers, sample_image_data, monkeypatch):
        monkeypatch.setattr(PILImage, "MAX_IMAGE_PIXELS", 1000)
        response = _upload(client, auth_headers(admin), sample_image_data)
        assert response.status_code == 400

    def test_too_large(self, client, admin, auth_headers, sample_image_data, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_bytes", 10)
        response = _upload(client, auth_headers(admin), sample_image_data)
        assert response.status_code == 413

    def test_storage_failure_cleans_up(self, client, admin, auth_headers, sample_image_data, storage, monkeypatch, test_db):
        from pintag.storage import StorageError

        original_put = storage.put

        def flaky_put(key, data, content_type=None):
            if key.endswith("card.webp"):
                raise StorageError("bucket unavailable")
            return original_put(key, data, content_type)

        monkeypatch.setattr(storage, "put", flaky_put)
        response = _upload(client, auth_headers(admin), sample_image_data)

        assert response.status_code == 502
        assert test_db.query(Image).count() == 0
        assert not any(p.is_file() for p in storage.root.rglob("*"))


class TestUserUploads:

    def test_upload_and_list_own(self, client, user, other_user, auth_headers, sample_image_data):
        headers = auth_headers(user)
        created = _upload(client, headers, sample_image_data, path="/api/v1/user-uploads")
        assert created.status_code == 201
        assert created.json()["is_user_upload"] is True
        assert created.json()["uploaded_by"]["id"] == user.id

        _upload(client, auth_headers(other_user), sample_image_data, path="/api/v1/user-uploads")

        mine = client.get("/api/v1/user-uploads", headers=headers).json()
        assert mine["total"] == 1

    def test_all_requires_admin(self, client, user, admin, auth_headers, sample_image_data):
        _upload(client, auth_headers(user), sample_image_data, path="/api/v1/user-uploads")

        assert client.get("/api/v1/user-uploads?all=true", headers=auth_headers(user)).status_code == 403
        everything = client.get("/api/v1/user-uploads?all=true", headers=auth_headers(admin)).json()
        assert everything["total"] == 1

    def test_requires_login(self, client, sample_image_data):
        response = _upload(client, {}, sample_image_data, path="/api/v1/user-uploads")
        assert response.status_code == 401


class TestListAndGet:

    def test_list_excludes_user_uploads_and_pages(self, test_db, make_image, user):
        for _ in range(3):
            make_image()
        make_image(is_user_upload=True, uploaded_by=user)

        result = asyncio.run(list_images(page=1, limit=2, db=test_db))
        assert result["total"] == 3
        assert result["total_pages"] == 2
        assert len(result["images"]) == 2
        assert result["images"][0]["thumbnail_url"].endswith("?variant=thumbnail")

    def test_get_by_id_or_media_id(self, test_db, make_image):
        image = make_image(media_id="AbCdEfGhIj")
        assert asyncio.run(get_image(image_ref=str(image.id), db=test_db))["media_id"] == "AbCdEfGhIj"
        assert asyncio.run(get_image(image_ref="AbCdEfGhIj", db=test_db))["id"] == image.id

    def test_get_unknown(self, test_db):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_image(image_ref="nope", db=test_db))
        assert exc.value.status_code == 404


class TestRandomImage:

    def test_cycles_without_repeats(self, test_db, make_image):
        ids = {make_image().id for _ in range(3)}
        seen = [asyncio.run(get_random_image(db=test_db))["id"] for _ in range(3)]
        assert set(seen) == ids

    def test_no_images(self, test_db):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_random_image(db=test_db))
        assert exc.value.status_code == 404
        assert exc.value.detail == "No images found"

    def test_skips_user_uploads(self, test_db, make_image, user):
        make_image(is_user_upload=True, uploaded_by=user)
        with pytest.raises(HTTPException):
            asyncio.run(get_random_image(db=test_db))


class TestEditAndDelete:

    def test_patch_alt(self, client, admin, auth_headers, make_image):
        image = make_image()
        response = client.patch(f"/api/v1/images/{image.id}", json={"alt": "Beach day"}, headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["alt"] == "Beach day"

    def test_delete_cascades(self, client, admin, user, auth_headers, sample_image_data, test_db, storage):
        created = _upload(client, auth_headers(admin), sample_image_data).json()
        headers = auth_headers(user)
        client.post(f"/api/v1/images/{created['id']}/tags", json={}, headers=headers)
        client.post(f"/api/v1/images/{created['id']}/comments", json={"comment_text": "hi"}, headers=headers)

        response = client.delete(f"/api/v1/images/{created['id']}", headers=auth_headers(admin))
        assert response.status_code == 200

        test_db.expire_all()
        assert test_db.query(Image).count() == 0
        assert test_db.query(ImageTag).count() == 0
        assert test_db.query(Comment).count() == 0
        assert not any(p.is_file() for p in storage.root.rglob("*"))


class TestFileServing:

    def test_content_variants(self, client, admin, auth_headers, sample_image_data):
        created = _upload(client, auth_headers(admin), sample_image_data).json()

        original = client.get(created["url"])
        assert original.status_code == 200
        assert original.headers["content-type"] == "image/jpeg"
        assert original.content == sample_image_data

        thumb = client.get(created["thumbnail_url"])
        assert thumb.headers["content-type"] == "image/webp"

        bad = client.get(f"/api/v1/images/{created['id']}/content?variant=huge")
        assert bad.status_code == 400

    def test_signed_url_flow(self, client, admin, auth_headers, sample_image_data, test_db):
        created = _upload(client, auth_headers(admin), sample_image_data).json()
        key = test_db.query(Image).filter(Image.id == created["id"]).one().storage_key

        signed = client.get("/api/v1/media/signed-url", params={"url": f"https://cdn.example.com/{key}"})
        assert signed.status_code == 200
        download = client.get(signed.json()["signed_url"])
        assert download.status_code == 200
        assert download.content == sample_image_data

    def test_tampered_signature(self, client, storage):
        storage.put("images/x/original.jpg", b"x")
        url = storage.signed_url("images/x/original.jpg").replace("signature=", "signature=0")
        assert client.get(url).status_code == 403

    def test_signed_url_requires_url(self, storage):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_signed_url(url=None, storage=storage))
        assert exc.value.status_code == 400
