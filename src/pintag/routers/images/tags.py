"""Image tag endpoints: person pins, location, occasion, date and review status."""

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, joinedload, selectinload

from pintag.auth.dependencies import get_current_user, require_admin
from pintag.auth.models import User
from pintag.dependencies import get_db
from pintag.metadata import TAG_STATUSES, ImageTag, Location, Occasion, Person, PersonTag
from pintag.routers._shared import resolve_image, serialize_tag
from pintag.tagging import (
    PinCoordinateError,
    WhenValueError,
    resolve_pin,
    summarize_verified,
    validate_when_value,
)

logger = logging.getLogger(__name__)

router = APIRouter()

TagStatus = Literal["Not Verified", "Tagged", "Verified"]


class PersonPinBody(BaseModel):
    person_id: int
    confidence: int = Field(3, ge=1, le=5)
    x: Optional[float] = None
    y: Optional[float] = None
    px: Optional[float] = None
    py: Optional[float] = None
    rendered_width: Optional[float] = None
    rendered_height: Optional[float] = None


class ImageTagCreateBody(BaseModel):
    people: List[PersonPinBody] = Field(default_factory=list)
    when_type: str = ""
    when_value: str = ""
    when_value_confidence: int = Field(3, ge=1, le=5)
    location_id: Optional[int] = None
    location_confidence: int = Field(3, ge=1, le=5)
    occasion_id: Optional[int] = None
    occasion_confidence: int = Field(3, ge=1, le=5)
    context: str = ""
    remarks: str = ""
    status: Optional[TagStatus] = None


class ImageTagUpdateBody(BaseModel):
    people: Optional[List[PersonPinBody]] = None
    when_type: Optional[str] = None
    when_value: Optional[str] = None
    when_value_confidence: Optional[int] = Field(None, ge=1, le=5)
    location_id: Optional[int] = None
    location_confidence: Optional[int] = Field(None, ge=1, le=5)
    occasion_id: Optional[int] = None
    occasion_confidence: Optional[int] = Field(None, ge=1, le=5)
    context: Optional[str] = None
    remarks: Optional[str] = None
    status: Optional[TagStatus] = None


class BulkStatusBody(BaseModel):
    ids: List[int] = Field(..., min_length=1)
    status: TagStatus


class BulkDeleteBody(BaseModel):
    ids: List[int] = Field(..., min_length=1)


def _tag_query(db: Session):
    return db.query(ImageTag).options(
        joinedload(ImageTag.location),
        joinedload(ImageTag.occasion),
        joinedload(ImageTag.created_by),
        selectinload(ImageTag.person_tags).joinedload(PersonTag.person),
    )


def _get_tag_or_404(db: Session, tag_id: int) -> ImageTag:
    tag = _tag_query(db).filter(ImageTag.id == tag_id).first()
    if not tag:
        raise HTTPException(status_code=404, detail="Tag not found")
    return tag


def _require_owner_or_admin(tag: ImageTag, user: User) -> None:
    if not user.is_admin and tag.created_by_id != user.id:
        raise HTTPException(status_code=403, detail="Only the tag author or an admin can change this tag")


def _check_reference(db: Session, model, entry_id: Optional[int], label: str) -> None:
    if entry_id is None:
        return
    if not db.query(model.id).filter(model.id == entry_id).first():
        raise HTTPException(status_code=400, detail=f"{label} {entry_id} not found")


def _build_person_tags(db: Session, people: List[PersonPinBody], user: User) -> List[PersonTag]:
    person_ids = {pin.person_id for pin in people}
    if person_ids:
        found = {row[0] for row in db.query(Person.id).filter(Person.id.in_(person_ids)).all()}
        missing = sorted(person_ids - found)
        if missing:
            raise HTTPException(status_code=400, detail=f"Person {missing[0]} not found")

    person_tags = []
    for pin in people:
        try:
            x, y = resolve_pin(
                x=pin.x,
                y=pin.y,
                px=pin.px,
                py=pin.py,
                rendered_width=pin.rendered_width,
                rendered_height=pin.rendered_height,
            )
        except PinCoordinateError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        person_tags.append(PersonTag(
            person_id=pin.person_id,
            confidence=pin.confidence,
            x=x,
            y=y,
            created_by_id=user.id,
        ))
    return person_tags


def _checked_when(when_type: Optional[str], when_value: Optional[str]):
    try:
        return validate_when_value(when_type, when_value)
    except WhenValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/images/{image_ref}/tags", response_model=dict, operation_id="list_image_tags")
async def list_image_tags(
    image_ref: str,
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """List the tags on one image, newest first."""
    image = resolve_image(db, image_ref)
    if status is not None and status not in TAG_STATUSES:
        raise HTTPException(status_code=400, detail=f"status must be one of: {', '.join(TAG_STATUSES)}")

    query = _tag_query(db).filter(ImageTag.image_id == image.id)
    if status:
        query = query.filter(ImageTag.status == status)
    tags = query.order_by(ImageTag.created_at.desc(), ImageTag.id.desc()).all()
    return {"image_id": image.id, "tags": [serialize_tag(tag) for tag in tags]}


@router.post("/images/{image_ref}/tags", response_model=dict, status_code=201, operation_id="create_image_tag")
async def create_image_tag(
    image_ref: str,
    body: ImageTagCreateBody,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Tag an image with people, place, occasion and date."""
    image = resolve_image(db, image_ref)

    if body.status and body.status != "Tagged" and not user.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can set tag status")

    when_type, when_value = _checked_when(body.when_type, body.when_value)
    _check_reference(db, Location, body.location_id, "Location")
    _check_reference(db, Occasion, body.occasion_id, "Occasion")
    person_tags = _build_person_tags(db, body.people, user)

    tag = ImageTag(
        image_id=image.id,
        when_type=when_type,
        when_value=when_value,
        when_value_confidence=body.when_value_confidence,
        location_id=body.location_id,
        location_confidence=body.location_confidence,
        occasion_id=body.occasion_id,
        occasion_confidence=body.occasion_confidence,
        context=body.context.strip(),
        remarks=body.remarks.strip(),
        status=body.status or "Tagged",
        created_by_id=user.id,
    )
    tag.person_tags = person_tags
    db.add(tag)
    db.commit()
    logger.info("User %s tagged image %s (tag %s)", user.email, image.id, tag.id)

    return serialize_tag(_get_tag_or_404(db, tag.id))


@router.get("/images/{image_ref}/verified", response_model=dict, operation_id="get_verified_info")
async def get_verified_info(image_ref: str, db: Session = Depends(get_db)):
    """Summarize an image's verified tags."""
    image = resolve_image(db, image_ref)
    tags = (
        _tag_query(db)
        .filter(ImageTag.image_id == image.id, ImageTag.status == "Verified")
        .order_by(ImageTag.created_at.desc(), ImageTag.id.desc())
        .all()
    )
    summary = summarize_verified(tags)
    summary["image_id"] = image.id
    return summary


@router.post("/image-tags/bulk-status", response_model=dict, operation_id="bulk_update_tag_status")
async def bulk_update_status(
    body: BulkStatusBody,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ids = list(dict.fromkeys(body.ids))
    tags = db.query(ImageTag).filter(ImageTag.id.in_(ids)).all()
    found = {tag.id for tag in tags}
    for tag in tags:
        tag.status = body.status
    db.commit()
    logger.info("Admin %s set %d tags to %s", admin.email, len(tags), body.status)
    return {"updated": sorted(found), "missing": [i for i in ids if i not in found]}


@router.post("/image-tags/bulk-delete", response_model=dict, operation_id="bulk_delete_tags")
async def bulk_delete_tags(
    body: BulkDeleteBody,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ids = list(dict.fromkeys(body.ids))
    tags = db.query(ImageTag).filter(ImageTag.id.in_(ids)).all()
    found = {tag.id for tag in tags}
    for tag in tags:
        db.delete(tag)
    db.commit()
    logger.info("Admin %s deleted %d tags", admin.email, len(tags))
    return {"deleted": sorted(found), "missing": [i for i in ids if i not in found]}


@router.get("/image-tags/{tag_id}", response_model=dict, operation_id="get_image_tag")
async def get_image_tag(tag_id: int, db: Session = Depends(get_db)):
    return serialize_tag(_get_tag_or_404(db, tag_id), include_image=True)


@router.patch("/image-tags/{tag_id}", response_model=dict, operation_id="update_image_tag")
async def update_image_tag(
    tag_id: int,
    body: ImageTagUpdateBody,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit a tag. Authors may edit their own tags; only admins change status."""
    tag = _get_tag_or_404(db, tag_id)
    _require_owner_or_admin(tag, user)

    fields = body.model_fields_set
    if "status" in fields and body.status is not None and body.status != tag.status:
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Only admins can change tag status")
        logger.info("Tag %s status %s -> %s by %s", tag.id, tag.status, body.status, user.email)
        tag.status = body.status

    if "when_type" in fields or "when_value" in fields:
        when_type = body.when_type if "when_type" in fields else tag.when_type
        when_value = body.when_value if "when_value" in fields else tag.when_value
        tag.when_type, tag.when_value = _checked_when(when_type, when_value)

    if "location_id" in fields:
        _check_reference(db, Location, body.location_id, "Location")
        tag.location_id = body.location_id
    if "occasion_id" in fields:
        _check_reference(db, Occasion, body.occasion_id, "Occasion")
        tag.occasion_id = body.occasion_id

    for name in ("when_value_confidence", "location_confidence", "occasion_confidence"):
        value = getattr(body, name)
        if name in fields and value is not None:
            setattr(tag, name, value)
    if body.context is not None:
        tag.context = body.context.strip()
    if body.remarks is not None:
        tag.remarks = body.remarks.strip()

    if body.people is not None:
        tag.person_tags = _build_person_tags(db, body.people, user)

    db.commit()
    db.expire_all()
    return serialize_tag(_get_tag_or_404(db, tag.id))


@router.delete("/image-tags/{tag_id}", response_model=dict, operation_id="delete_image_tag")
async def delete_image_tag(
    tag_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tag = _get_tag_or_404(db, tag_id)
    _require_owner_or_admin(tag, user)
    db.delete(tag)
    db.commit()
    return {"deleted": True, "id": tag_id}
