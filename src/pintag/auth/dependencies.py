"""FastAPI dependencies for authentication and authorization."""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import Cookie, Header, HTTPException, Depends, status
from jose import JWTError
from sqlalchemy.orm import Session

from pintag.database import get_db
from pintag.auth.jwt import get_user_id_from_token
from pintag.auth.models import User
from pintag.settings import settings


def _extract_token(authorization: Optional[str], cookie_token: Optional[str]) -> str:
    if authorization:
        if not authorization.startswith("Bearer "):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authorization header format",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return authorization[7:]  # Remove "Bearer " prefix
    if cookie_token:
        return cookie_token
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Optional[str] = Header(None),
    cookie_token: Optional[str] = Cookie(None, alias=settings.auth_cookie_name),
    db: Session = Depends(get_db)
) -> User:
    """Verify the access token and return the authenticated user.

    The token is read from the ``Authorization: Bearer`` header, falling back
    to the auth cookie set by the login endpoint.

    Raises:
        HTTPException 401: Missing, invalid or expired token, or unknown user
        HTTPException 403: Account deactivated
    """
    token = _extract_token(authorization, cookie_token)

    try:
        user_id = get_user_id_from_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    # Touch last_login_at at most once per hour to avoid per-request writes
    now = datetime.utcnow()
    if user.last_login_at is None or (now - user.last_login_at) > timedelta(hours=1):
        user.last_login_at = now
        db.commit()

    return user


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    cookie_token: Optional[str] = Cookie(None, alias=settings.auth_cookie_name),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Get current user if authenticated, None otherwise.

    Useful for public reads that personalize output (e.g. the caller's vote).
    """
    if not authorization and not cookie_token:
        return None

    try:
        return await get_current_user(authorization, cookie_token, db)
    except HTTPException:
        return None


def require_admin(
    user: User = Depends(get_current_user)
) -> User:
    """Require the admin role.

    Raises:
        HTTPException 403: User is not an admin
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required"
        )
    return user
