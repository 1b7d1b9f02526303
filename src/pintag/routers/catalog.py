"""Catalog endpoints for persons, locations and occasions.

The three collections share one shape (a unique name), so a single router
factory builds the CRUD routes for each.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from pintag.auth.dependencies import get_current_user, require_admin
from pintag.auth.models import User
from pintag.database import get_db
from pintag.metadata import ImageTag, Location, Occasion, Person, PersonTag
from pintag.routers._shared import contains_pattern, serialize_entry
from pintag.settings import settings

logger = logging.getLogger(__name__)


class CatalogEntryBody(BaseModel):
    name: str = Field(..., max_length=255)


def _clean_name(name: Optional[str]) -> str:
    value = (name or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail="name cannot be empty")
    return value


def _is_referenced(db: Session, model, entry_id: int) -> bool:
    if model is Person:
        return db.query(PersonTag.id).filter(PersonTag.person_id == entry_id).first() is not None
    if model is Location:
        return db.query(ImageTag.id).filter(ImageTag.location_id == entry_id).first() is not None
    if model is Occasion:
        return db.query(ImageTag.id).filter(ImageTag.occasion_id == entry_id).first() is not None
    return False


def build_catalog_router(model, path: str, label: str) -> APIRouter:
    """Build list/get/create/rename/delete routes for one catalog model."""
    router = APIRouter(prefix=f"/api/v1/{path}", tags=["catalog"])

    def _get_or_404(db: Session, entry_id: int):
        entry = db.query(model).filter(model.id == entry_id).first()
        if not entry:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return entry

    def _ensure_unique(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(model).filter(func.lower(model.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=409, detail=f"{label} '{name}' already exists")

    @router.get("", response_model=dict, operation_id=f"list_{path}")
    async def list_entries(
        q: Optional[str] = Query(None),
        limit: int = Query(settings.catalog_list_limit),
        db: Session = Depends(get_db),
    ):
        query = db.query(model)
        term = (q or "").strip()
        if term:
            query = query.filter(model.name.ilike(contains_pattern(term), escape="\\"))
        total = query.count()
        limit = min(max(limit, 1), settings.catalog_list_limit)
        entries = query.order_by(model.name.asc()).limit(limit).all()
        return {"docs": [serialize_entry(e) for e in entries], "total": total}

    @router.get("/{entry_id}", response_model=dict, operation_id=f"get_{path}_entry")
    async def get_entry(entry_id: int, db: Session = Depends(get_db)):
        return serialize_entry(_get_or_404(db, entry_id))

    @router.post("", response_model=dict, status_code=201, operation_id=f"create_{path}_entry")
    async def create_entry(
        body: CatalogEntryBody,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ):
        name = _clean_name(body.name)
        _ensure_unique(db, name)
        entry = model(name=name)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        logger.info("%s created %s '%s'", user.email, label.lower(), name)
        return serialize_entry(entry)

    @router.patch("/{entry_id}", response_model=dict, operation_id=f"rename_{path}_entry")
    async def rename_entry(
        entry_id: int,
        body: CatalogEntryBody,
        admin: User = Depends(require_admin),
        db: Session = Depends(get_db),
    ):
        entry = _get_or_404(db, entry_id)
        name = _clean_name(body.name)
        _ensure_unique(db, name, exclude_id=entry.id)
        entry.name = name
        db.commit()
        db.refresh(entry)
        return serialize_entry(entry)

    @router.delete("/{entry_id}", response_model=dict, operation_id=f"delete_{path}_entry")
    async def delete_entry(
        entry_id: int,
        admin: User = Depends(require_admin),
        db: Session = Depends(get_db),
    ):
        entry = _get_or_404(db, entry_id)
        if _is_referenced(db, model, entry.id):
            raise HTTPException(status_code=409, detail=f"{label} is still used by tags")
        db.delete(entry)
        db.commit()
        return {"deleted": True, "id": entry_id}

    return router


persons_router = build_catalog_router(Person, "persons", "Person")
locations_router = build_catalog_router(Location, "locations", "Location")
occasions_router = build_catalog_router(Occasion, "occasions", "Occasion")
