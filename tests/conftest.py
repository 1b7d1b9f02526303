"""Test configuration and fixtures."""

import io

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from pintag.auth.models import User
from pintag.auth.passwords import hash_password
import pintag.database  # noqa: F401  (sqlite foreign-key hook)
from pintag.metadata import Base
from pintag.random_picker import random_picker
from pintag.ratelimit import limiter
from pintag.storage import LocalStorageProvider

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
def engine():
    """In-memory database shared across threads (TestClient runs the app in one)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def test_db(engine):
    """Create test database."""
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    yield session

    session.close()


@pytest.fixture(autouse=True)
def reset_process_state():
    """Random picker history and rate limits are process-wide."""
    random_picker.reset()
    limiter.reset()
    yield
    random_picker.reset()


@pytest.fixture
def storage(tmp_path) -> LocalStorageProvider:
    return LocalStorageProvider(tmp_path / "media", secret_key="test-secret")


@pytest.fixture
def make_user(test_db: Session):
    """Factory for persisted accounts."""
    counter = {"n": 0}

    def _make(display_name=None, role="user", email=None, password=TEST_PASSWORD, is_active=True) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"user{n}@example.com",
            display_name=display_name or f"User {n}",
            password_hash=hash_password(password),
            role=role,
            is_active=is_active,
        )
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user) -> User:
    return make_user(display_name="Alice Tagger", email="alice@example.com")


@pytest.fixture
def other_user(make_user) -> User:
    return make_user(display_name="Bob Viewer", email="bob@example.com")


@pytest.fixture
def admin(make_user) -> User:
    return make_user(display_name="Ada Admin", email="admin@example.com", role="admin")


@pytest.fixture
def sample_image_data():
    """Generate sample image data for testing."""
    from PIL import Image

    img = Image.new('RGB', (100, 80), color='red')
    buffer = io.BytesIO()
    img.save(buffer, format='JPEG')
    return buffer.getvalue()


@pytest.fixture
def client(engine, storage):
    """TestClient bound to the in-memory database and temp storage."""
    from fastapi.testclient import TestClient

    from pintag.api import app
    from pintag.database import get_db
    from pintag.storage import get_storage_provider

    SessionLocal = sessionmaker(bind=engine)

    def _get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage_provider] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def password() -> str:
    return TEST_PASSWORD


@pytest.fixture
def make_image(test_db: Session):
    """Factory for image rows (no stored objects)."""
    from pintag.metadata import Image

    counter = {"n": 0}

    def _make(is_user_upload=False, uploaded_by=None, **fields):
        counter["n"] += 1
        media_id = fields.pop("media_id", f"media{counter['n']:05d}")
        image = Image(
            media_id=media_id,
            filename=fields.pop("filename", f"photo{counter['n']}.jpg"),
            mime_type="image/jpeg",
            width=100,
            height=80,
            storage_key=f"images/{media_id}/original.jpg",
            thumbnail_key=f"images/{media_id}/thumbnail.webp",
            card_key=f"images/{media_id}/card.webp",
            is_user_upload=is_user_upload,
            uploaded_by_id=uploaded_by.id if uploaded_by else None,
            **fields,
        )
        test_db.add(image)
        test_db.commit()
        test_db.refresh(image)
        return image

    return _make


@pytest.fixture
def auth_headers(client, password):
    """Log a user in through the API and return bearer headers."""

    def _headers(user) -> dict:
        response = client.post("/api/v1/auth/login", json={"email": user.email, "password": password})
        assert response.status_code == 200, response.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _headers
