"""Core image endpoints: list, random pick, upload, get, edit and delete."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pintag.auth.dependencies import require_admin
from pintag.auth.models import User
from pintag.dependencies import get_db, get_storage_provider, normalize_pagination, page_count
from pintag.image import ImageValidationError
from pintag.ingest import UploadTooLarge, ingest_image
from pintag.metadata import Image
from pintag.random_picker import random_picker
from pintag.routers._shared import resolve_image, serialize_image
from pintag.settings import settings
from pintag.storage import StorageError, StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter()


class ImageUpdateBody(BaseModel):
    alt: Optional[str] = Field(None, max_length=1024)


async def store_upload(
    file: Optional[UploadFile],
    db: Session,
    storage: StorageProvider,
    *,
    alt: Optional[str] = None,
    uploaded_by: Optional[User] = None,
    is_user_upload: bool = False,
) -> Image:
    """Run an uploaded file through ingestion, mapping failures to HTTP errors."""
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    # Read at most one byte past the limit so oversize uploads are detected
    data = await file.read(settings.max_upload_bytes + 1)
    try:
        return ingest_image(
            db,
            storage,
            data=data,
            filename=file.filename,
            content_type=file.content_type,
            alt=alt,
            uploaded_by=uploaded_by,
            is_user_upload=is_user_upload,
        )
    except UploadTooLarge as exc:
        raise HTTPException(status_code=413, detail=str(exc))
    except ImageValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except StorageError:
        logger.exception("Storage failure while uploading %s", file.filename)
        raise HTTPException(status_code=502, detail="Failed to store image")


@router.get("/images", response_model=dict, operation_id="list_images")
async def list_images(
    page: int = Query(1),
    limit: int = Query(10),
    db: Session = Depends(get_db),
):
    """List catalog images, newest first."""
    page, limit = normalize_pagination(page, limit)
    query = db.query(Image).filter(Image.is_user_upload.is_(False))
    total = query.count()
    images = (
        query.order_by(Image.created_at.desc(), Image.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "images": [serialize_image(image) for image in images],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": page_count(total, limit),
    }


@router.get("/images/random", response_model=dict, operation_id="get_random_image")
async def get_random_image(db: Session = Depends(get_db)):
    """Return a catalog image not yet shown in the current cycle."""

    def _load_pool():
        rows = (
            db.query(Image.id)
            .filter(Image.is_user_upload.is_(False))
            .order_by(Image.id.asc())
            .limit(settings.random_image_pool_limit)
            .all()
        )
        return [row[0] for row in rows]

    try:
        image_id = random_picker.next(_load_pool)
    except LookupError:
        raise HTTPException(status_code=404, detail="No images found")

    image = db.query(Image).filter(Image.id == image_id).first()
    if image is None:
        # Deleted since the pool was loaded; start a fresh cycle.
        random_picker.reset()
        try:
            image_id = random_picker.next(_load_pool)
        except LookupError:
            raise HTTPException(status_code=404, detail="No images found")
        image = db.query(Image).filter(Image.id == image_id).first()
        if image is None:
            raise HTTPException(status_code=404, detail="No images found")
    return serialize_image(image)


@router.post("/images", response_model=dict, status_code=201, operation_id="upload_image")
async def upload_image(
    file: UploadFile = File(None),
    alt: Optional[str] = Form(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """Add an image to the catalog (admin only)."""
    image = await store_upload(file, db, storage, alt=alt, uploaded_by=admin)
    return serialize_image(image)


@router.get("/images/{image_ref}", response_model=dict, operation_id="get_image")
async def get_image(image_ref: str, db: Session = Depends(get_db)):
    """Get one image by numeric id or media id."""
    return serialize_image(resolve_image(db, image_ref))


@router.patch("/images/{image_ref}", response_model=dict, operation_id="update_image")
async def update_image(
    image_ref: str,
    body: ImageUpdateBody,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    image = resolve_image(db, image_ref)
    image.alt = (body.alt or "").strip() or None
    db.commit()
    db.refresh(image)
    return serialize_image(image)


@router.delete("/images/{image_ref}", response_model=dict, operation_id="delete_image")
async def delete_image(
    image_ref: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """Delete an image with its tags, comments and stored objects."""
    image = resolve_image(db, image_ref)
    image_id = image.id

    # Albums must keep at least one image.
    sole_albums = [album.slug for album in image.albums if len(album.images) == 1]
    if sole_albums:
        raise HTTPException(
            status_code=409,
            detail=f"Image is the only image in album(s): {', '.join(sorted(sole_albums))}",
        )

    keys = [image.storage_key, image.thumbnail_key, image.card_key]

    db.delete(image)
    db.commit()
    storage.delete_many(keys)
    logger.info("Admin %s deleted image %s", admin.email, image_id)
    return {"deleted": True, "id": image_id}
