"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient

from apps.posts.main import app
from apps.posts.repository import PostRepository
from apps.shared.database import SessionLocal, configure_database, dispose_database, init_schema


@pytest.fixture
def database_url(tmp_path, monkeypatch):
    """Point DATABASE_URL at a fresh SQLite file for each test."""
    url = f"sqlite:///{tmp_path / 'posts.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    return url


@pytest.fixture
def client(database_url):
    """Test client running the real startup (connect + create tables)."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def db(database_url):
    """A session against a freshly created schema, without the HTTP layer."""
    engine = configure_database(database_url)
    init_schema(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        dispose_database()


@pytest.fixture
def repository(db):
    return PostRepository(db)


@pytest.fixture
def post_payload():
    return {
        "title": "First steps with FastAPI",
        "content": "Routing, dependencies and response models.",
        "category": "Python",
        "tags": ["fastapi", "tutorial"],
    }
