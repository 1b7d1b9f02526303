"""Tests for settings defaults and environment overrides."""

from pintag.settings import Settings


def test_defaults():
    config = Settings(_env_file=None)
    assert config.auth_token_expiration_seconds == 7200
    assert config.max_login_attempts == 5
    assert config.login_lock_seconds == 600
    assert config.thumbnail_size == (400, 300)
    assert config.card_size == (768, 1024)
    assert config.signed_url_ttl_seconds == 3600
    assert config.random_image_pool_limit == 1000


def test_environment_override(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "prod")
    monkeypatch.setenv("MAX_LOGIN_ATTEMPTS", "3")
    config = Settings(_env_file=None)
    assert config.is_production
    assert not config.is_development
    assert config.max_login_attempts == 3
