from __future__ import annotations

import os
import tempfile
from typing import Callable, Generator

# Settings are read at import time, so the test environment must exist first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("RUN_MIGRATIONS", "false")
os.environ.setdefault("UPLOAD_TMP_DIR", os.path.join(tempfile.gettempdir(), "blogspace-test-uploads"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from blogspace import models
from blogspace.auth import create_access_token
from blogspace.db import Base, SessionLocal, engine
from blogspace.main import app
from blogspace.services.auth_identities import add_password_identity

TEST_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def schema() -> Generator[None, None, None]:
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def uploads(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    """Stub Cloudinary; records each upload call."""
    calls: list[dict] = []

    def fake_upload(path: str, **options):
        calls.append({"path": path, **options})
        return {
            "secure_url": f"https://res.cloudinary.com/demo/{options.get('folder')}/{len(calls)}.png",
            "public_id": f"{options.get('folder')}/{len(calls)}",
        }

    monkeypatch.setattr("cloudinary.uploader.upload", fake_upload)
    return calls


@pytest.fixture()
def make_user(db: Session) -> Callable[..., models.User]:
    """Factory for users with a password identity."""

    def _make_user(
        username: str = "alice",
        email: str | None = None,
        role: str = "user",
        is_active: bool = True,
        password: str = TEST_PASSWORD,
    ) -> models.User:
        email = email or f"{username}@example.com"
        user = models.User(
            username=username,
            email=email,
            first_name=username.capitalize(),
            last_name="Tester",
            role=role,
            is_active=is_active,
            is_email_verified=False,
            social_links={},
            preferences={},
        )
        db.add(user)
        db.flush()
        add_password_identity(db, user_id=user.id, email=email, password=password)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user) -> models.User:
    return make_user("alice")


@pytest.fixture()
def other_user(make_user) -> models.User:
    return make_user("bob")


@pytest.fixture()
def admin_user(make_user) -> models.User:
    return make_user("root_admin", role="admin")


def bearer(user: models.User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def auth_headers() -> Callable[[models.User], dict[str, str]]:
    return bearer


@pytest.fixture()
def make_blog(client: TestClient) -> Callable[..., dict]:
    """Create a blog through the API and return its JSON."""

    def _make_blog(
        user: models.User,
        title: str = "Hello World",
        content: str = "Some words about things",
        category: str = "Technology",
        status: str = "published",
        **extra,
    ) -> dict:
        response = client.post(
            "/api/blogs",
            headers=bearer(user),
            data={"title": title, "content": content, "category": category, "status": status, **extra},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]["blog"]

    return _make_blog
