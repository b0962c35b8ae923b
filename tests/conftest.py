"""
Pytest fixtures - in-memory database, session, seeded users.
Each test gets a fresh schema; nothing touches a real database.
"""

from datetime import datetime, timezone
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from fluentrepo.db.base import Base
from fluentrepo.db.models import User, ViewCount  # noqa: F401 - ensure models are registered
from fluentrepo.db.repositories import UserRepository, ViewCountRepository

# One shared in-memory SQLite connection per test
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def engine():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine, expire_on_commit=False) as s:
        yield s


def make_user(session: Session, user_name: str, customer_name: str, deleted: bool = False, **extra) -> User:
    user = User(
        user_name=user_name,
        email=f"{user_name}@example.com",
        password="secret",
        avatar_url=f"https://avatars.example.com/{user_name}.png",
        customer_name=customer_name,
        deleted_at=datetime.now(timezone.utc) if deleted else None,
        **extra,
    )
    session.add(user)
    session.flush()
    return user


@pytest.fixture
def users(session: Session) -> dict[str, User]:
    """Six users across three customers; carol and erin are soft-deleted."""
    rows = [
        ("bob", "Acme", False, {"location": "Oslo"}),
        ("alice", "Acme", False, {"location": "Berlin"}),
        ("carol", "Acme", True, {"location": "Oslo"}),
        ("dave", "Globex", False, {}),
        ("erin", "Globex", True, {}),
        ("frank", "Initech", False, {"website": "https://initech.example.com"}),
    ]
    created = {
        name: make_user(session, name, customer, deleted, **extra)
        for name, customer, deleted, extra in rows
    }
    session.commit()
    return created


@pytest.fixture
def user_repo(session: Session) -> UserRepository:
    return UserRepository(session)


@pytest.fixture
def view_count_repo(session: Session) -> ViewCountRepository:
    return ViewCountRepository(session)
