"""
Pytest configuration for the notebook API.

- `db`: an in-memory mongomock database wired in through get_db
- `clock`: a settable clock wired in through get_now
- `client`: FastAPI TestClient over the app with both overrides
"""
import os
from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "mongodb://localhost:27017")
os.environ.setdefault("DATABASE_NAME", "study_notebook_test")

from database import get_db  # noqa: E402
from main import app  # noqa: E402
from schemas import Question  # noqa: E402
from utils import get_now, iso  # noqa: E402

T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def db():
    return mongomock.MongoClient()["study_notebook_test"]


@pytest.fixture
def clock():
    return Clock(T0)


@pytest.fixture
def client(db, clock):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_now] = lambda: clock.now
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def make_question(db, clock):
    """Insert a question and return its id as a string."""
    counter = {"sno": 0}

    def _make(**fields):
        counter["sno"] += 1
        data = {"sno": counter["sno"], "topic": "Arrays", "problem": f"Problem {counter['sno']}"}
        data.update(fields)
        doc = Question(**data).model_dump()
        doc["created_at"] = doc["updated_at"] = iso(clock.now)
        return str(db["question"].insert_one(doc).inserted_id)

    return _make
