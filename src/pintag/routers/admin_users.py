"""Admin endpoints for account management."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from pintag.auth.dependencies import require_admin
from pintag.auth.models import User
from pintag.auth.passwords import hash_password
from pintag.auth.schemas import AdminUserCreateRequest, AdminUserUpdateRequest, UserResponse
from pintag.database import get_db
from pintag.dependencies import normalize_pagination, page_count

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users", response_model=dict)
async def list_users(
    page: int = Query(1),
    limit: int = Query(25),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    page, limit = normalize_pagination(page, limit)
    query = db.query(User)
    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "users": [UserResponse.model_validate(u).model_dump(mode="json") for u in users],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": page_count(total, limit),
    }


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    body: AdminUserCreateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    email = body.email.strip().lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=email,
        display_name=body.display_name.strip(),
        password_hash=hash_password(body.password),
        role=body.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Admin %s created %s account %s", admin.email, user.role, user.email)
    return user


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    body: AdminUserUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_user_or_404(db, user_id)

    if user.id == admin.id and (body.role == "user" or body.is_active is False):
        raise HTTPException(status_code=400, detail="Admins cannot demote or deactivate themselves")

    if body.display_name is not None:
        user.display_name = body.display_name.strip()
    if body.role is not None:
        user.role = body.role
    if body.is_active is not None:
        user.is_active = body.is_active

    db.commit()
    db.refresh(user)
    return user


@router.delete("/users/{user_id}", response_model=dict)
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="Admins cannot delete their own account")

    db.delete(user)
    db.commit()
    logger.info("Admin %s deleted account %s", admin.email, user.email)
    return {"deleted": True, "id": user_id}
