# tests/conftest.py
import os

# Must be set before aidogs.core.config builds its settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["EXIT_ON_UNHANDLED_ERROR"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("REF_ACCOUNTS_FILE", None)

import pytest
from fastapi.testclient import TestClient

from aidogs.auth.token import create_access_token
from aidogs.database import Base, SessionLocal, engine
from aidogs.main import app
from aidogs.schemas.common import TelegramProfile
from aidogs.services.leaderboard import snapshot_cache


@pytest.fixture(autouse=True)
def reset_db():
    """Fresh schema and an empty leaderboard cache for every test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    snapshot_cache.clear()
    yield
    snapshot_cache.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "ops", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


def make_profile(user_id: int, username: str | None = None) -> TelegramProfile:
    username = username or f"user{user_id}"
    return TelegramProfile(id=user_id, username=username, first_name=username.title(), last_name="Dog")


def tg_user(user_id: int, username: str | None = None) -> dict:
    return make_profile(user_id, username).model_dump()
