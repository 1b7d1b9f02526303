"""Shared lookups and serializers for API routers."""

from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from pintag.auth.models import User
from pintag.metadata import Image, ImageTag


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def contains_pattern(term: str) -> str:
    """Build a LIKE pattern matching ``term`` literally anywhere in a value."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def serialize_user_ref(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "display_name": user.display_name}


def serialize_entry(entry) -> Optional[dict]:
    """Serialize a person, location or occasion."""
    if entry is None:
        return None
    return {
        "id": entry.id,
        "name": entry.name,
        "created_at": _iso(entry.created_at),
    }


def image_content_url(image: Image, variant: Optional[str] = None) -> str:
    url = f"/api/v1/images/{image.id}/content"
    if variant and variant != "original":
        url = f"{url}?variant={variant}"
    return url


def serialize_image(image: Image) -> dict:
    return {
        "id": image.id,
        "media_id": image.media_id,
        "filename": image.filename,
        "alt": image.alt,
        "mime_type": image.mime_type,
        "filesize": image.filesize,
        "width": image.width,
        "height": image.height,
        "is_user_upload": bool(image.is_user_upload),
        "uploaded_by": serialize_user_ref(image.uploaded_by),
        "url": image_content_url(image),
        "thumbnail_url": image_content_url(image, "thumbnail"),
        "card_url": image_content_url(image, "card"),
        "created_at": _iso(image.created_at),
        "updated_at": _iso(image.updated_at),
    }


def serialize_tag(tag: ImageTag, include_image: bool = False) -> dict:
    data = {
        "id": tag.id,
        "image_id": tag.image_id,
        "when_type": tag.when_type,
        "when_value": tag.when_value,
        "when_value_confidence": tag.when_value_confidence,
        "location": serialize_entry(tag.location),
        "location_confidence": tag.location_confidence,
        "occasion": serialize_entry(tag.occasion),
        "occasion_confidence": tag.occasion_confidence,
        "context": tag.context,
        "remarks": tag.remarks,
        "status": tag.status,
        "people": [
            {
                "id": person_tag.id,
                "person": serialize_entry(person_tag.person),
                "confidence": person_tag.confidence,
                "x": person_tag.x,
                "y": person_tag.y,
            }
            for person_tag in tag.person_tags
        ],
        "created_by": serialize_user_ref(tag.created_by),
        "created_at": _iso(tag.created_at),
        "updated_at": _iso(tag.updated_at),
    }
    if include_image and tag.image is not None:
        data["image"] = serialize_image(tag.image)
    return data


def resolve_image(db: Session, image_ref: str) -> Image:
    """Look up an image by numeric id or media id."""
    ref = str(image_ref or "").strip()
    image = None
    if ref.isdigit():
        image = db.query(Image).filter(Image.id == int(ref)).first()
    if image is None and ref:
        image = db.query(Image).filter(Image.media_id == ref).first()
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return image
