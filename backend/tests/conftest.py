"""Shared fixtures: in-memory database, test app and a small novel catalog."""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("SEARCH_RATE_LIMIT", "10000/minute")

from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storytags.database import Base, get_db
from storytags.models import Category, Novel
from storytags.routes import admin, novels, tags
from storytags.routes.common import limiter
from storytags.services.tags import set_novel_tags


@pytest.fixture
def test_db():
    """Create test database"""
    # StaticPool so every connection shares the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(test_db):
    """Database session for service-level tests."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_app(test_db):
    """Create test FastAPI app without lifespan"""
    app = FastAPI()
    app.state.limiter = limiter
    app.include_router(tags.router, prefix="/api")
    app.include_router(novels.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db)

    def override_get_db():
        try:
            db = TestingSessionLocal()
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(test_app):
    """Create test client"""
    return TestClient(test_app)


@pytest.fixture
def make_novel(db_session):
    """
    Factory: add a novel and tag it through the regular write path,
    so tag counts stay consistent.
    """
    counter = {"n": 0}

    def _make(title=None, tags=(), **fields):
        counter["n"] += 1
        title = title or f"Novel {counter['n']}"
        now = datetime.utcnow()
        values = {
            "title": title,
            "slug": f"{title.lower().replace(' ', '-')}-{counter['n']}",
            "is_published": True,
            "is_banned": False,
            "created_at": now,
            "updated_at": now,
        }
        values.update(fields)
        novel = Novel(**values)
        db_session.add(novel)
        db_session.commit()
        if tags:
            set_novel_tags(db_session, novel.id, list(tags))
        return novel

    return _make


@pytest.fixture
def romance_catalog(make_novel):
    """
    N1 {romance, ceo}
    N2 {romance, billionaire}
    N3 {romance, ceo, billionaire}
    """
    n1 = make_novel("N1", tags=["romance", "ceo"])
    n2 = make_novel("N2", tags=["romance", "billionaire"])
    n3 = make_novel("N3", tags=["romance", "ceo", "billionaire"])
    return n1, n2, n3


@pytest.fixture
def category(db_session):
    """A 'Romance' category."""
    cat = Category(name="Romance", slug="romance")
    db_session.add(cat)
    db_session.commit()
    return cat
