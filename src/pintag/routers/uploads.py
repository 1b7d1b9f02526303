"""User uploads: images contributed by signed-in users for tagging."""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session, joinedload

from pintag.auth.dependencies import get_current_user
from pintag.auth.models import User
from pintag.dependencies import get_db, get_storage_provider, normalize_pagination, page_count
from pintag.metadata import Image
from pintag.routers._shared import serialize_image
from pintag.routers.images.core import store_upload
from pintag.storage import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user-uploads", tags=["uploads"])


@router.post("", response_model=dict, status_code=201, operation_id="create_user_upload")
async def create_user_upload(
    file: UploadFile = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: StorageProvider = Depends(get_storage_provider),
):
    image = await store_upload(file, db, storage, uploaded_by=current_user, is_user_upload=True)
    return serialize_image(image)


@router.get("", response_model=dict, operation_id="list_user_uploads")
async def list_user_uploads(
    page: int = Query(1),
    limit: int = Query(10),
    all_users: bool = Query(False, alias="all"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the caller's uploads; admins may list everyone's with ``all=true``."""
    if all_users and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")

    page, limit = normalize_pagination(page, limit)
    query = db.query(Image).options(joinedload(Image.uploaded_by)).filter(Image.is_user_upload.is_(True))
    if not all_users:
        query = query.filter(Image.uploaded_by_id == current_user.id)

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
