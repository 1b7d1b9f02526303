"""Admin review dashboard over image tags."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload, selectinload

from pintag.auth.dependencies import require_admin
from pintag.auth.models import User
from pintag.dependencies import get_db, normalize_pagination, page_count
from pintag.metadata import Image, ImageTag, PersonTag
from pintag.routers._shared import contains_pattern, serialize_image, serialize_tag
from pintag.tagging import consolidate_tags

router = APIRouter(prefix="/api/v1/tags", tags=["dashboard"])


def _order_column(sort: str):
    if sort not in ("asc", "desc"):
        raise HTTPException(status_code=400, detail="sort must be 'asc' or 'desc'")
    if sort == "asc":
        return (ImageTag.created_at.asc(), ImageTag.id.asc())
    return (ImageTag.created_at.desc(), ImageTag.id.desc())


def _tag_query(db: Session):
    return db.query(ImageTag).options(
        joinedload(ImageTag.image).joinedload(Image.uploaded_by),
        joinedload(ImageTag.location),
        joinedload(ImageTag.occasion),
        joinedload(ImageTag.created_by),
        selectinload(ImageTag.person_tags).joinedload(PersonTag.person),
    )


@router.get("/dashboard", response_model=dict, operation_id="get_tag_dashboard")
async def get_dashboard(
    page: int = Query(1),
    limit: int = Query(10),
    sort: str = Query("desc"),
    user: Optional[str] = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Page through all tags, optionally filtered by the tagger's name."""
    page, limit = normalize_pagination(page, limit)
    ordering = _order_column(sort)

    query = _tag_query(db)
    term = (user or "").strip()
    if term:
        query = query.join(User, ImageTag.created_by_id == User.id).filter(
            User.display_name.ilike(contains_pattern(term), escape="\\")
        )

    total = query.count()
    tags = query.order_by(*ordering).offset((page - 1) * limit).limit(limit).all()
    return {
        "tags": [serialize_tag(tag, include_image=True) for tag in tags],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": page_count(total, limit),
    }


@router.get("/consolidated", response_model=dict, operation_id="get_consolidated_tags")
async def get_consolidated(
    page: int = Query(1),
    limit: int = Query(10),
    sort: str = Query("desc"),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Verified tags merged per image for the current page of tags."""
    page, limit = normalize_pagination(page, limit)
    ordering = _order_column(sort)

    query = _tag_query(db).filter(ImageTag.status == "Verified")
    total = query.count()
    tags = query.order_by(*ordering).offset((page - 1) * limit).limit(limit).all()

    rows = []
    for entry in consolidate_tags(tags):
        row = entry.to_dict()
        row["image"] = serialize_image(entry.image) if entry.image is not None else None
        rows.append(row)

    return {
        "rows": rows,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": page_count(total, limit),
    }
