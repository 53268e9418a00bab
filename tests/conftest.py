"""Shared fixtures: temp data dir, fresh tables per test, users and tokens."""

import os
import tempfile

# Setup environment for testing (before any buddy import reads settings)
os.environ["BUDDY_DATA_DIR"] = tempfile.mkdtemp()
os.environ["BUDDY_DB_PATH"] = os.path.join(os.environ["BUDDY_DATA_DIR"], "test.db")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from buddy.database import engine  # noqa: E402
from buddy.main import app  # noqa: E402
from buddy.services.friend_service import add_friend, create_user  # noqa: E402
from buddy.utils.security import create_access_token  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(session):
    def _make(username: str, friends: tuple = ()) -> str:
        user = create_user(session, username=username, name=username.title())
        for friend_id in friends:
            add_friend(session, user.id, friend_id)
        return user.id
    return _make


@pytest.fixture
def auth():
    def _headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return _headers
