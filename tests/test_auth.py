"""Tests for password hashing, access tokens and auth dependencies."""

import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from jose import JWTError, jwt

from pintag.auth.dependencies import get_current_user, get_optional_user, require_admin
from pintag.auth.jwt import create_access_token, decode_access_token, get_user_id_from_token
from pintag.auth.passwords import hash_password, verify_password
from pintag.auth.recaptcha import verify_recaptcha
from pintag.routers.auth import register_failed_login
from pintag.settings import settings


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong-pass", hashed)

    def test_verify_handles_empty_and_malformed(self):
        assert not verify_password("", hash_password("x" * 8))
        assert not verify_password("anything", "")
        assert not verify_password("anything", "not-a-bcrypt-hash")

    def test_multibyte_password_limit(self):
        at_limit = "\u00e9" * 36
        assert verify_password(at_limit, hash_password(at_limit))

        too_long = "\u00e9" * 40
        with pytest.raises(ValueError):
            hash_password(too_long)
        assert not verify_password(too_long, hash_password(at_limit))


class TestAccessTokens:

    def test_round_trip_claims(self, user):
        token = create_access_token(user)
        claims = decode_access_token(token)
        assert claims["sub"] == str(user.id)
        assert claims["role"] == "user"
        assert claims["exp"] - claims["iat"] == settings.auth_token_expiration_seconds
        assert get_user_id_from_token(token) == user.id

    def test_expired_token_rejected(self, user):
        token = create_access_token(user, expires_in=-10)
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_wrong_signature_rejected(self, user):
        token = jwt.encode({"sub": str(user.id)}, "other-secret", algorithm="HS256")
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_missing_subject_rejected(self):
        token = jwt.encode({"role": "user"}, settings.auth_secret_key, algorithm=settings.auth_algorithm)
        with pytest.raises(JWTError):
            decode_access_token(token)


class TestGetCurrentUser:

    def test_bearer_header(self, test_db, user):
        token = create_access_token(user)
        resolved = asyncio.run(get_current_user(authorization=f"Bearer {token}", cookie_token=None, db=test_db))
        assert resolved.id == user.id
        assert resolved.last_login_at is not None

    def test_cookie_fallback(self, test_db, user):
        token = create_access_token(user)
        resolved = asyncio.run(get_current_user(authorization=None, cookie_token=token, db=test_db))
        assert resolved.id == user.id

    def test_missing_token(self, test_db):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_user(authorization=None, cookie_token=None, db=test_db))
        assert exc.value.status_code == 401
        assert exc.value.headers["WWW-Authenticate"] == "Bearer"

    def test_bad_header_format(self, test_db, user):
        token = create_access_token(user)
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_user(authorization=f"Token {token}", cookie_token=None, db=test_db))
        assert exc.value.status_code == 401

    def test_invalid_token(self, test_db):
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_user(authorization="Bearer garbage", cookie_token=None, db=test_db))
        assert exc.value.status_code == 401

    def test_deleted_user(self, test_db, user):
        token = create_access_token(user)
        test_db.delete(user)
        test_db.commit()
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_user(authorization=f"Bearer {token}", cookie_token=None, db=test_db))
        assert exc.value.status_code == 401

    def test_inactive_user(self, test_db, make_user):
        inactive = make_user(is_active=False)
        token = create_access_token(inactive)
        with pytest.raises(HTTPException) as exc:
            asyncio.run(get_current_user(authorization=f"Bearer {token}", cookie_token=None, db=test_db))
        assert exc.value.status_code == 403

    def test_optional_user(self, test_db, user):
        assert asyncio.run(get_optional_user(authorization=None, cookie_token=None, db=test_db)) is None
        assert asyncio.run(get_optional_user(authorization="Bearer bad", cookie_token=None, db=test_db)) is None
        token = create_access_token(user)
        resolved = asyncio.run(get_optional_user(authorization=None, cookie_token=token, db=test_db))
        assert resolved.id == user.id


def test_require_admin(user, admin):
    assert require_admin(user=admin) is admin
    with pytest.raises(HTTPException) as exc:
        require_admin(user=user)
    assert exc.value.status_code == 403


class TestLockout:

    def test_locks_after_max_attempts(self, user):
        now = datetime(2024, 1, 1, 12, 0, 0)
        for _ in range(settings.max_login_attempts - 1):
            register_failed_login(user, now)
        assert user.lock_until is None
        assert user.login_attempts == settings.max_login_attempts - 1

        register_failed_login(user, now)
        assert user.lock_until == now + timedelta(seconds=settings.login_lock_seconds)
        assert user.login_attempts == 0
        assert user.is_locked(now + timedelta(seconds=1))
        assert not user.is_locked(now + timedelta(seconds=settings.login_lock_seconds + 1))


def test_recaptcha_disabled_without_secret(monkeypatch):
    monkeypatch.setattr(settings, "recaptcha_secret_key", None)
    assert asyncio.run(verify_recaptcha(None)) is True


def test_recaptcha_missing_token_with_secret(monkeypatch):
    monkeypatch.setattr(settings, "recaptcha_secret_key", "secret")
    assert asyncio.run(verify_recaptcha(None)) is False
