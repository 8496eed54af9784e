"""
LeanAb test configuration.

Every test gets its own in-memory SQLite database; nothing touches
PostgreSQL or the working directory.
"""
import os

# Must be set before any leanab module builds its settings or engine
os.environ.setdefault("LEANAB_DATABASE_URL", "sqlite://")
os.environ.setdefault("LEANAB_TOKENS", '["test-token"]')
os.environ.setdefault("LEANAB_FUNNEL_STEPS", '["signup", "purchase"]')

import random

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from leanab.core.db import build_engine, init_db


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def count_rows(db):
    """Returns a helper counting rows of an ORM class in the test database."""

    def _count(orm_class) -> int:
        return db.scalar(select(func.count()).select_from(orm_class))

    return _count
