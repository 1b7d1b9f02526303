"""Image file serving: stored bytes, signed URLs and local signed downloads."""

import logging
import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from pintag.dependencies import get_db, get_storage_provider
from pintag.routers._shared import resolve_image
from pintag.settings import settings
from pintag.storage import LocalStorageProvider, StorageError, StorageProvider, key_from_url

logger = logging.getLogger(__name__)

router = APIRouter()

VARIANTS = ("original", "thumbnail", "card")


@router.get("/images/{image_ref}/content", operation_id="get_image_content")
async def get_image_content(
    image_ref: str,
    variant: str = Query("original"),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """Return the bytes of the original image or one of its derivatives."""
    if variant not in VARIANTS:
        raise HTTPException(status_code=400, detail=f"variant must be one of: {', '.join(VARIANTS)}")

    image = resolve_image(db, image_ref)
    if variant == "thumbnail":
        key, media_type = image.thumbnail_key, "image/webp"
    elif variant == "card":
        key, media_type = image.card_key, "image/webp"
    else:
        key = image.storage_key
        media_type = image.mime_type or mimetypes.guess_type(image.filename or "")[0] or "application/octet-stream"

    if not key:
        raise HTTPException(status_code=404, detail=f"Image has no {variant} file")

    try:
        data = storage.get(key)
    except StorageError:
        logger.exception("Failed to read %s for image %s", key, image.id)
        raise HTTPException(status_code=502, detail="Failed to read image from storage")

    return Response(
        content=data,
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=3600"},
    )


@router.get("/media/signed-url", response_model=dict, operation_id="get_signed_url")
async def get_signed_url(
    url: str = Query(None),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """Return a time-limited download URL for the object addressed by ``url``."""
    if not url:
        raise HTTPException(status_code=400, detail="url is required")
    try:
        key = key_from_url(url)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        signed = storage.signed_url(key, settings.signed_url_ttl_seconds)
    except StorageError:
        logger.exception("Failed to sign url for %s", key)
        raise HTTPException(status_code=502, detail="Failed to generate signed url")
    return {"signed_url": signed}


@router.get("/media/files/{key:path}", operation_id="get_signed_file")
async def get_signed_file(
    key: str,
    expires: int = Query(...),
    signature: str = Query(...),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """Serve a locally stored object through a URL signed by the local provider."""
    if not isinstance(storage, LocalStorageProvider):
        raise HTTPException(status_code=404, detail="Not found")
    if not storage.verify_signature(key, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        data = storage.get(key)
    except StorageError:
        raise HTTPException(status_code=404, detail="Not found")
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
