"""Pytest configuration and fixtures."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from murmur.database import Base, get_db
from murmur.models.message import Message
from murmur.models.profile import Profile  # noqa: F401
from murmur.models.user import User  # noqa: F401
from murmur.services.auth import AuthService
from murmur.services.storage import StorageService


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="storage")
def storage_fixture(tmp_path, monkeypatch):
    """Point object storage at a temporary directory."""
    from murmur.services import storage as storage_module

    service = StorageService(root=str(tmp_path / "storage"))
    monkeypatch.setattr(storage_module, "_storage_service", service)
    return service


@pytest.fixture(name="client")
def client_fixture(db_session: Session, storage: StorageService, monkeypatch):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from main import app
    from murmur.rate_limit import limiter
    from murmur.services import export as export_module

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    monkeypatch.setattr(export_module, "_export_service", export_module.ExportService())
    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Create a test recipient and return (user_data, token)."""
    from murmur.services.jwt import get_jwt_service

    auth_service = AuthService()
    result = auth_service.register(db_session, "test@example.com", "password123", "tester", "Test User")

    token = get_jwt_service().create_token(
        user_id=result.user_id,
        email=result.email,
        username=result.username,
        display_name=result.display_name,
    )

    return {
        "user_id": result.user_id,
        "email": result.email,
        "username": result.username,
        "display_name": result.display_name,
        "token": token,
    }


@pytest.fixture(name="make_message")
def make_message_fixture(db_session: Session):
    """Insert a message row directly, with full control over its timestamp."""

    def _make(recipient_id: str, created_at: datetime | None = None, **fields) -> Message:
        message = Message(recipient_id=recipient_id, **fields)
        if created_at is not None:
            message.created_at = created_at
        db_session.add(message)
        db_session.commit()
        db_session.refresh(message)
        return message

    return _make