"""Application settings and environment configuration."""

from typing import Optional
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[2]
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = "Pintag"
    debug: bool = False
    environment: str = "dev"  # 'dev' or 'prod'

    # Database
    database_url: str = "sqlite:///./pintag.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800
    db_pool_pre_ping: bool = True

    # Authentication
    auth_secret_key: str = "change-me-in-production"
    auth_algorithm: str = "HS256"
    # Lifetime of the signed access token itself.
    auth_token_expiration_seconds: int = 7200
    auth_cookie_name: str = "pintag-token"
    # Lifetime of the browser cookie carrying the token.
    auth_cookie_max_age_seconds: int = 7 * 24 * 60 * 60
    max_login_attempts: int = 5
    login_lock_seconds: int = 600

    # reCAPTCHA (verification is skipped when no secret is configured)
    recaptcha_secret_key: Optional[str] = None
    recaptcha_verify_url: str = "https://www.google.com/recaptcha/api/siteverify"

    # Storage
    storage_backend: str = "local"  # 'local' or 'gcs'
    local_storage_dir: str = str(BASE_DIR / "media")
    gcp_project_id: Optional[str] = None
    storage_bucket_name: str = "pintag-images"
    signed_url_ttl_seconds: int = 3600
    max_upload_bytes: int = 32 * 1024 * 1024

    # Image derivatives
    thumbnail_width: int = 400
    thumbnail_height: int = 300
    card_width: int = 768
    card_height: int = 1024
    derivative_quality: int = 80

    # Listing limits
    random_image_pool_limit: int = 1000
    catalog_list_limit: int = 100

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Application URL (CORS origin and absolute links)
    app_url: str = "http://localhost:8080"

    @property
    def thumbnail_size(self) -> tuple[int, int]:
        return (self.thumbnail_width, self.thumbnail_height)

    @property
    def card_size(self) -> tuple[int, int]:
        return (self.card_width, self.card_height)

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "dev"


settings = Settings()
