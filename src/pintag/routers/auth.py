"""Authentication endpoints: registration, login, logout and session lookup.

Login issues a signed access token and also stores it in an HttpOnly cookie so
the page guard and browser fetches are authenticated without extra headers.
Repeated failed logins lock the account for ``login_lock_seconds``.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from pintag.auth.dependencies import get_current_user
from pintag.auth.jwt import create_access_token
from pintag.auth.models import User
from pintag.auth.passwords import hash_password, verify_password
from pintag.auth.recaptcha import RecaptchaUnavailable, verify_recaptcha
from pintag.auth.schemas import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from pintag.database import get_db
from pintag.ratelimit import limiter
from pintag.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _safe_redirect(target: Optional[str]) -> str:
    """Only allow same-site relative redirects."""
    value = (target or "").strip()
    if not value.startswith("/") or value.startswith("//"):
        return "/"
    return value


async def _require_recaptcha(token: Optional[str], request: Request) -> None:
    remote_ip = request.client.host if request.client else None
    try:
        ok = await verify_recaptcha(token, remote_ip=remote_ip)
    except RecaptchaUnavailable:
        raise HTTPException(status_code=502, detail="reCAPTCHA verification unavailable")
    if not ok:
        raise HTTPException(status_code=400, detail="reCAPTCHA verification failed")


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.auth_cookie_max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def register_failed_login(user: User, now: Optional[datetime] = None) -> None:
    """Count a failed password attempt, locking the account at the limit."""
    now = now or datetime.utcnow()
    user.login_attempts = (user.login_attempts or 0) + 1
    if user.login_attempts >= settings.max_login_attempts:
        user.lock_until = now + timedelta(seconds=settings.login_lock_seconds)
        user.login_attempts = 0
        logger.warning("Locked account %s after repeated failed logins", user.email)


@router.post("/register", response_model=UserResponse, status_code=201)
@limiter.limit("30/minute")
async def register(
    request: Request,
    body: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Create a regular user account.

    Raises:
        HTTPException 400: reCAPTCHA missing or rejected
        HTTPException 409: Email already registered
    """
    await _require_recaptcha(body.recaptcha_token, request)

    email = body.email.strip().lower()
    existing = db.query(User).filter(func.lower(User.email) == email).first()
    if existing:
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=email,
        display_name=body.display_name.strip(),
        password_hash=hash_password(body.password),
        role="user",
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.email)
    return user


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    redirect_from: Optional[str] = Query(None, alias="from"),
    db: Session = Depends(get_db),
):
    """Authenticate with email and password.

    Returns the user, the post-login redirect target and the access token,
    and sets the auth cookie.

    Raises:
        HTTPException 400: reCAPTCHA missing or rejected
        HTTPException 401: Unknown email or wrong password
        HTTPException 403: Account locked or deactivated
    """
    await _require_recaptcha(body.recaptcha_token, request)

    email = body.email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()
    if not user:
        logger.info("Login failed for unknown email %s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    now = datetime.utcnow()
    if user.is_locked(now):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is temporarily locked. Try again later.",
        )

    if not verify_password(body.password, user.password_hash):
        register_failed_login(user, now)
        db.commit()
        logger.info("Login failed for %s", user.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    user.login_attempts = 0
    user.lock_until = None
    user.last_login_at = now
    db.commit()
    db.refresh(user)

    token = create_access_token(user)
    _set_auth_cookie(response, token)
    logger.info("User %s logged in", user.email)

    return LoginResponse(
        user=UserResponse.model_validate(user),
        redirect_to=_safe_redirect(redirect_from),
        token=token,
    )


@router.post("/logout", response_model=dict)
async def logout(response: Response):
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return user
