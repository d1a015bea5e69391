"""Shared test fixtures"""
import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from celebstyle_gateway import db_models  # noqa: E402,F401
from celebstyle_gateway.auth import APIKeyManager  # noqa: E402
from celebstyle_gateway.database import Base, build_engine, get_db  # noqa: E402
from celebstyle_gateway.health import metrics  # noqa: E402
from celebstyle_gateway.main_api import app  # noqa: E402



@pytest.fixture
def engine():
    """In-memory SQLite engine shared across sessions of one test"""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def manager(db_session) -> APIKeyManager:
    """APIKeyManager bound to the test database"""
    return APIKeyManager(db_session, salt="test-salt-123", key_prefix="csk_")


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """Test client whose requests use the test database"""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    metrics.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def test_owner_email() -> str:
    return "stylist@example.com"


@pytest.fixture
def test_admin_password() -> str:
    """Test admin password"""
    return "test-admin-pass-123"
