"""
Pytest configuration and fixtures for AnswerScope tests.
"""

import os

# Keep the application engine off the working directory
os.environ.setdefault("DB_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from app.database.init_db import demo_assignment, demo_submissions
from app.database.session import get_session
from app.main import app
from app.models.storage import StoredRecord  # noqa: F401  registers the table
from app.services.config_service import config_service
from app.services.storage_service import InMemoryRecordRepository, SQLRecordRepository, StorageService


@pytest.fixture
def test_engine():
    """Create an isolated in-memory database engine for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def test_db_session(test_engine):
    """Create a test database session."""
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(test_db_session):
    """Create a test client with database dependency override."""

    def override_get_session():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_session] = override_get_session

    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clean_config():
    """Drop runtime setting overrides between tests."""
    config_service.reset()
    yield
    config_service.reset()


@pytest.fixture
def fake_clock():
    """Freeze config_service.now() at 2026-01-15 UTC."""
    config_service.set_setting("APP_NOW_MODE", "fake")
    config_service.set_setting("APP_FAKE_NOW", "2026-01-15")
    return "2026-01-15T00:00:00+00:00"


@pytest.fixture
def memory_storage():
    """Storage service over an in-memory repository."""
    return StorageService(InMemoryRecordRepository())


@pytest.fixture
def sql_storage(test_db_session):
    """Storage service over the test database."""
    return StorageService(SQLRecordRepository(test_db_session))


@pytest.fixture
def sample_assignment():
    """Three-question data structures assignment."""
    return demo_assignment()


@pytest.fixture
def sample_submissions():
    """Eight students answering all three questions, all scored."""
    return demo_submissions()
