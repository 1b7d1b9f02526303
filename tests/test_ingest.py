"""Tests for shared image ingestion."""

import pytest

from pintag.image import ImageValidationError
from pintag.ingest import UploadTooLarge, ingest_image
from pintag.metadata import Image
from pintag.settings import settings
from pintag.storage import StorageError


def test_ingest_records_and_stores(test_db, storage, sample_image_data, user):
    image = ingest_image(
        test_db,
        storage,
        data=sample_image_data,
        filename="Family.JPG",
        content_type="image/jpeg",
        alt="Family",
        uploaded_by=user,
        is_user_upload=True,
    )

    assert image.id is not None
    assert image.storage_key == f"images/{image.media_id}/original.jpg"
    assert image.thumbnail_key == f"images/{image.media_id}/thumbnail.webp"
    assert image.card_key == f"images/{image.media_id}/card.webp"
    assert image.filesize == len(sample_image_data)
    assert image.uploaded_by_id == user.id
    for key in (image.storage_key, image.thumbnail_key, image.card_key):
        assert storage.exists(key)


def test_media_ids_are_unique(test_db, storage, sample_image_data):
    ids = {
        ingest_image(test_db, storage, data=sample_image_data, filename=f"{n}.jpg").media_id
        for n in range(3)
    }
    assert len(ids) == 3


def test_empty_data(test_db, storage):
    with pytest.raises(ImageValidationError):
        ingest_image(test_db, storage, data=b"", filename="a.jpg")


def test_size_limit(test_db, storage, sample_image_data, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", len(sample_image_data) - 1)
    with pytest.raises(UploadTooLarge):
        ingest_image(test_db, storage, data=sample_image_data, filename="a.jpg")


def test_storage_failure_rolls_back(test_db, storage, sample_image_data, monkeypatch):
    calls = []
    original_put = storage.put

    def failing_put(key, data, content_type=None):
        calls.append(key)
        if len(calls) == 2:
            raise StorageError("disk full")
        original_put(key, data, content_type)

    monkeypatch.setattr(storage, "put", failing_put)
    with pytest.raises(StorageError):
        ingest_image(test_db, storage, data=sample_image_data, filename="a.jpg")

    assert test_db.query(Image).count() == 0
    assert not storage.exists(calls[0])
