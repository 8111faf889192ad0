"""Pytest configuration and fixtures for CoFish tests.

Test isolation strategy:
- Every test gets its own SQLite database file under tmp_path, created from
  the ORM metadata; nothing is shared between tests
- db_session is a plain session on that database; factories commit
- App tests run the real app with auth middleware backed by MockJwtVerifier
  and the get_db dependency pointed at the per-test database
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path
from uuid import UUID

# Settings are read at import time by cofish.celery; give tests a baseline env
os.environ.setdefault("COFISH_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from cofish.app import create_app
from cofish.auth.middleware import AuthMiddleware
from cofish.config import clear_settings_cache
from cofish.db.models import Base
from cofish.db.session import create_session_factory, get_db, set_session_factory
from cofish.services.bootstrap import ensure_user_record
from cofish.services.preview_quota import set_preview_quota
from tests.helpers import create_test_user_id
from tests.support.test_verifier import MockJwtVerifier


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    """A fresh SQLite database with the full schema."""
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'cofish.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> Generator[sessionmaker[Session], None, None]:
    """Session factory bound to the test database, also installed as the default.

    Code that opens its own sessions (worker tasks, the admin CLI) picks it up.
    """
    factory = create_session_factory(engine)
    set_session_factory(factory)
    yield factory
    set_session_factory(None)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client without authentication, for public endpoints."""
    app = create_app(skip_auth_middleware=True)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def test_verifier() -> MockJwtVerifier:
    return MockJwtVerifier()


@pytest.fixture
def authenticated_app(session_factory: sessionmaker[Session]) -> FastAPI:
    """App with auth middleware using the test verifier and the test database."""

    def bootstrap_callback(user_id: UUID, claims: dict) -> None:
        db = session_factory()
        try:
            ensure_user_record(db, user_id, email=claims.get("email"))
        finally:
            db.close()

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app = create_app(skip_auth_middleware=True)
    app.add_middleware(
        AuthMiddleware,
        verifier=MockJwtVerifier(),
        requires_internal_header=False,
        internal_secret=None,
        bootstrap_callback=bootstrap_callback,
    )
    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def auth_client(authenticated_app: FastAPI) -> Generator[TestClient, None, None]:
    """Authenticated test client. Use auth_headers() to build request headers."""
    with TestClient(authenticated_app) as client:
        yield client


@pytest.fixture
def test_user_id() -> UUID:
    return create_test_user_id()


@pytest.fixture(autouse=True)
def reset_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_preview_quota():
    set_preview_quota(None)
    yield
    set_preview_quota(None)
