"""Access token issuing and verification (HS256 via python-jose)."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from pintag.settings import settings


def create_access_token(user, expires_in: Optional[int] = None) -> str:
    """Sign an access token for a user.

    Claims:
    - sub: user id (string)
    - role: 'user' or 'admin'
    - iat / exp: issue and expiry times
    """
    now = datetime.now(timezone.utc)
    ttl = settings.auth_token_expiration_seconds if expires_in is None else expires_in
    claims = {
        "sub": str(user.id),
        "role": user.role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl)).timestamp()),
    }
    return jwt.encode(claims, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry and return the decoded claims.

    Raises:
        JWTError: If token is invalid, expired, or missing the subject
    """
    try:
        decoded = jwt.decode(
            token,
            settings.auth_secret_key,
            algorithms=[settings.auth_algorithm],
            options={"verify_signature": True, "verify_exp": True},
        )
    except JWTError as e:
        raise JWTError(f"Token verification failed: {str(e)}")

    if not decoded.get("sub"):
        raise JWTError("Token has no subject")
    return decoded


def get_user_id_from_token(token: str) -> int:
    """Extract the user id from a verified token."""
    decoded = decode_access_token(token)
    try:
        return int(decoded["sub"])
    except (TypeError, ValueError):
        raise JWTError("Token subject is not a user id")
