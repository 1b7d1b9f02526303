"""Album endpoints: public reads, admin writes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from pintag.auth.dependencies import require_admin
from pintag.auth.models import User
from pintag.database import get_db
from pintag.identifiers import slugify
from pintag.metadata import Album, Image
from pintag.routers._shared import serialize_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/albums", tags=["albums"])


class AlbumCreateBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    short_description: Optional[str] = None
    image_ids: List[int] = Field(default_factory=list)


class AlbumUpdateBody(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    short_description: Optional[str] = None
    image_ids: Optional[List[int]] = None


def _serialize_album(album: Album, include_images: bool = True) -> dict:
    data = {
        "id": album.id,
        "name": album.name,
        "slug": album.slug,
        "short_description": album.short_description,
        "image_count": len(album.images),
        "created_at": album.created_at.isoformat() if album.created_at else None,
        "updated_at": album.updated_at.isoformat() if album.updated_at else None,
    }
    if include_images:
        data["images"] = [serialize_image(image) for image in album.images]
    return data


def _resolve_album(db: Session, album_ref: str) -> Album:
    ref = str(album_ref or "").strip()
    album = None
    if ref.isdigit():
        album = db.query(Album).filter(Album.id == int(ref)).first()
    if album is None:
        album = db.query(Album).filter(Album.slug == ref).first()
    if album is None:
        raise HTTPException(status_code=404, detail="Album not found")
    return album


def _load_images(db: Session, image_ids: List[int]) -> List[Image]:
    ids = list(dict.fromkeys(image_ids))
    if not ids:
        raise HTTPException(status_code=400, detail="An album needs at least one image")
    images = db.query(Image).filter(Image.id.in_(ids)).all()
    by_id = {image.id: image for image in images}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise HTTPException(status_code=400, detail=f"Image {missing[0]} not found")
    return [by_id[i] for i in ids]


def _checked_slug(db: Session, raw: str, exclude_id: Optional[int] = None) -> str:
    slug = slugify(raw)
    if not slug:
        raise HTTPException(status_code=400, detail="Album slug cannot be empty")
    if slug.isdigit():
        # Numeric refs resolve to album ids.
        raise HTTPException(status_code=400, detail="Album slug cannot be only digits")
    query = db.query(Album.id).filter(Album.slug == slug)
    if exclude_id is not None:
        query = query.filter(Album.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail=f"Album slug '{slug}' already exists")
    return slug


@router.get("", response_model=dict, operation_id="list_albums")
async def list_albums(db: Session = Depends(get_db)):
    albums = db.query(Album).order_by(Album.name.asc()).all()
    return {"docs": [_serialize_album(a, include_images=False) for a in albums], "total": len(albums)}


@router.get("/{album_ref}", response_model=dict, operation_id="get_album")
async def get_album(album_ref: str, db: Session = Depends(get_db)):
    return _serialize_album(_resolve_album(db, album_ref))


@router.post("", response_model=dict, status_code=201, operation_id="create_album")
async def create_album(
    body: AlbumCreateBody,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Album name cannot be empty")
    slug = _checked_slug(db, body.slug or name)
    images = _load_images(db, body.image_ids)

    album = Album(name=name, slug=slug, short_description=body.short_description)
    album.images = images
    db.add(album)
    db.commit()
    db.refresh(album)
    logger.info("Admin %s created album %s", admin.email, album.slug)
    return _serialize_album(album)


@router.patch("/{album_ref}", response_model=dict, operation_id="update_album")
async def update_album(
    album_ref: str,
    body: AlbumUpdateBody,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    album = _resolve_album(db, album_ref)
    if body.name is not None:
        name = body.name.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Album name cannot be empty")
        album.name = name
    if body.slug is not None:
        album.slug = _checked_slug(db, body.slug, exclude_id=album.id)
    if body.short_description is not None:
        album.short_description = body.short_description
    if body.image_ids is not None:
        album.images = _load_images(db, body.image_ids)

    db.commit()
    db.refresh(album)
    return _serialize_album(album)


@router.delete("/{album_ref}", response_model=dict, operation_id="delete_album")
async def delete_album(
    album_ref: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    album = _resolve_album(db, album_ref)
    album_id = album.id
    db.delete(album)
    db.commit()
    return {"deleted": True, "id": album_id}
