import mongomock
import pytest

from studybuddy.auth import create_session_token
from studybuddy.database import ensure_indexes, get_db
from studybuddy.main import app
from studybuddy.schemas import SessionUser


@pytest.fixture(autouse=True)
def mongo_db():
    """Give every test a fresh in-memory database behind the app."""
    db = mongomock.MongoClient()["study_buddy_test"]
    ensure_indexes(db)
    app.dependency_overrides[get_db] = lambda: db
    yield db
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def session_user():
    return SessionUser(id="583231", login="octocat", display_name="The Octocat")


@pytest.fixture
def auth_headers(session_user):
    token = create_session_token(session_user)
    return {"Authorization": f"Bearer {token}"}
