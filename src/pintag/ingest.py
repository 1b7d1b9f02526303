"""Shared image ingestion used by the upload routes and the CLI importer."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from pintag.identifiers import generate_media_id
from pintag.image import ImageProcessor, ImageValidationError
from pintag.metadata import Image
from pintag.settings import settings
from pintag.storage import StorageProvider, derivative_key, original_key

logger = logging.getLogger(__name__)


class UploadTooLarge(ValueError):
    """Upload exceeds the configured size limit."""


def build_processor() -> ImageProcessor:
    return ImageProcessor(
        thumbnail_size=settings.thumbnail_size,
        card_size=settings.card_size,
        quality=settings.derivative_quality,
    )


def _unique_media_id(db: Session) -> str:
    for _ in range(5):
        media_id = generate_media_id()
        if not db.query(Image.id).filter(Image.media_id == media_id).first():
            return media_id
    raise RuntimeError("Could not allocate a unique media id")


def ingest_image(
    db: Session,
    storage: StorageProvider,
    *,
    data: bytes,
    filename: str,
    content_type: Optional[str] = None,
    alt: Optional[str] = None,
    uploaded_by=None,
    is_user_upload: bool = False,
    processor: Optional[ImageProcessor] = None,
) -> Image:
    """Validate, store and record one image.

    Objects written before a failure are removed and the session is rolled
    back, so a failed ingest leaves neither rows nor files behind.

    Raises:
        ImageValidationError: Missing, empty, unsupported or corrupt input.
        UploadTooLarge: Input larger than ``max_upload_bytes``.
        StorageError: The storage backend rejected a write.
    """
    if not filename:
        raise ImageValidationError("File must have a filename")
    if not data:
        raise ImageValidationError("Empty file")
    if len(data) > settings.max_upload_bytes:
        raise UploadTooLarge(
            f"File exceeds maximum upload size of {settings.max_upload_bytes} bytes"
        )

    processor = processor or build_processor()
    processed = processor.process(data, filename, content_type)

    media_id = _unique_media_id(db)
    keys = {
        "original": original_key(media_id, processed.extension),
        "thumbnail": derivative_key(media_id, "thumbnail"),
        "card": derivative_key(media_id, "card"),
    }

    written = []
    try:
        storage.put(keys["original"], data, processed.mime_type)
        written.append(keys["original"])
        storage.put(keys["thumbnail"], processed.thumbnail, "image/webp")
        written.append(keys["thumbnail"])
        storage.put(keys["card"], processed.card, "image/webp")
        written.append(keys["card"])

        image = Image(
            media_id=media_id,
            filename=filename,
            alt=alt,
            mime_type=processed.mime_type,
            filesize=len(data),
            width=processed.width,
            height=processed.height,
            format=processed.format,
            storage_key=keys["original"],
            thumbnail_key=keys["thumbnail"],
            card_key=keys["card"],
            exif_data=processed.exif or None,
            uploaded_by_id=uploaded_by.id if uploaded_by is not None else None,
            is_user_upload=is_user_upload,
        )
        db.add(image)
        db.commit()
        db.refresh(image)
    except Exception:
        db.rollback()
        storage.delete_many(written)
        raise

    logger.info(
        "Stored image %s (%s, %dx%d, user_upload=%s)",
        media_id, filename, processed.width, processed.height, is_user_upload,
    )
    return image
