"""
Pytest fixtures for testing
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from redemption.infrastructure.db.session import Base
from redemption.infrastructure.db.models import User


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def user(db_session) -> User:
    u = User(id=1, email="owner@example.com", password_hash="x", enabled_plugins=[])
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture
def other_user(db_session) -> User:
    u = User(id=2, email="other@example.com", password_hash="x", enabled_plugins=[])
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture
def client(db_session):
    """TestClient wired to the test session, logged in as a fresh user."""
    from redemption.api.deps import get_db
    from redemption.main import app

    def _get_test_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_test_db
    test_client = TestClient(app)
    response = test_client.post(
        "/api/v1/auth/register",
        json={"email": "api@example.com", "password": "correct horse"},
    )
    assert response.status_code == 201
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()
