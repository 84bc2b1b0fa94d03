import os
import tempfile

# Must be set before any octagram imports that read settings
_TMP_DIR = tempfile.mkdtemp()
os.environ["APP_ENV_FILE"] = os.path.join(_TMP_DIR, "missing.env")
os.environ["DATA_DIR"] = _TMP_DIR
os.environ["SQLITE_PATH"] = os.path.join(_TMP_DIR, "octagram.db")
os.environ["LLM_API_KEY"] = "sk-test"
os.environ["LLM_BASE_URL"] = "https://llm.test/v1"
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_ANON_KEY"] = "anon-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import octagram.models  # noqa: F401
from octagram.core.auth import UserContext, get_current_user
from octagram.core.database import Base, get_db
from octagram.main import app

LLM_URL = "https://llm.test/v1/chat/completions"
SUPABASE_AUTH_URL = "https://project.supabase.test/auth/v1"


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user():
    return UserContext(
        user_id="user-1",
        email="ada@example.com",
        claims={"sub": "user-1"},
        access_token="access-token-1",
    )


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def client(session_factory, user):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
