"""
Pytest configuration and fixtures for Sentinel tests.

This module provides shared fixtures for testing database models, repositories,
and other components.
"""

import os

# Must be set before sentinel.db.connection builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

import uuid
from contextlib import contextmanager
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from sentinel.models.db import Base, Repo


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine using SQLite in-memory."""
    from sqlalchemy import JSON, event
    from sqlalchemy.dialects import postgresql

    # Replace JSONB with JSON for SQLite
    @event.listens_for(Base.metadata, "before_create")
    def _set_json_type(target, connection, **kw):
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, postgresql.JSONB):
                    column.type = JSON()

    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={
            "check_same_thread": False
        },  # Allow cross-thread access for TestClient
    )

    # pysqlite defers BEGIN on its own; emit it ourselves so SAVEPOINT works
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_engine) -> Generator[Session, None, None]:
    """
    Create a new database session for a test.

    Each test gets a fresh session inside an outer transaction that is rolled
    back after the test completes. Commits and rollbacks made by the code
    under test act on savepoints within it.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = sessionmaker(bind=connection, join_transaction_mode="create_savepoint")()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def session_factory(db_session: Session):
    """Stand-in for background_session that hands out the test session."""

    @contextmanager
    def factory():
        yield db_session

    return factory


@pytest.fixture
def api_client(db_session: Session):
    """Create a test client for FastAPI with database dependency override."""
    from fastapi.testclient import TestClient

    from sentinel.api.app import app
    from sentinel.db.connection import get_db

    # Override the get_db dependency to use test database
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    client = TestClient(app)
    yield client

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def sample_repo(db_session: Session) -> Repo:
    """Create a tracked repository reporting in America/Los_Angeles."""
    repo = Repo(
        id=uuid.uuid4(),
        installation_id=1001,
        github_id=5001,
        owner="acme",
        name="storefront",
        is_active=True,
        timezone="America/Los_Angeles",
    )
    db_session.add(repo)
    db_session.commit()
    return repo


@pytest.fixture
def inactive_repo(db_session: Session) -> Repo:
    repo = Repo(
        id=uuid.uuid4(),
        installation_id=1001,
        github_id=5002,
        owner="acme",
        name="legacy",
        is_active=False,
    )
    db_session.add(repo)
    db_session.commit()
    return repo
