import os
import random
from datetime import datetime, timedelta, timezone

# The app module builds its engine at import time; keep it off the disk.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_QUESTIONS", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from scio.app import create_app
from scio.core import get_clock, get_session
from scio.models import Question
from scio.services.identity import upsert_identity
from scio.services.questions import seed_questions


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms=0, seconds=0):
        self.now += timedelta(milliseconds=ms, seconds=seconds)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def clock():
    # A Wednesday, so the active season starts on Monday 2025-03-03.
    return FakeClock(datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def questions(session):
    seed_questions(session)
    return session.exec(select(Question).order_by(Question.id)).all()


@pytest.fixture
def make_user(session, clock):
    """Registers players; ``make_user("c1", "Alice", rating=1300)``."""

    def factory(client_id, name=None, rating=None):
        user = upsert_identity(session, client_id, name, clock=clock).user
        if rating is not None:
            user.rating = rating
            session.add(user)
            session.commit()
            session.refresh(user)
        return user

    return factory


@pytest.fixture
def app(session, clock, questions):
    app = create_app()
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_clock] = lambda: clock
    return app


@pytest.fixture
def client(app):
    return TestClient(app)
