import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leanab.core.settings import config_settings
from leanab.models.orm.base import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """
    Creates the SQLAlchemy engine for a connection string.

    SQLite connections are shared across request threads, and an in-memory
    SQLite database is pinned to a single connection so every session sees it.
    """
    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return create_engine(database_url, **options)

    return create_engine(database_url, pool_pre_ping=True)


engine = build_engine(config_settings.DATABASE_URL)

# Each request gets its own session (a unit of work)
SessionLocal = sessionmaker(autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    """
    Creates the experiments, groups, assignments and events tables if missing.

    Idempotent; run once at service startup instead of on query failure.
    """
    # Registers every mapped table on Base.metadata
    import leanab.models.orm.assignment  # noqa: F401
    import leanab.models.orm.event  # noqa: F401
    import leanab.models.orm.experiment  # noqa: F401

    Base.metadata.create_all(bind=bind)
    logger.info("LeanAb schema ready on %s", bind.url.render_as_string(hide_password=True))


def get_db():
    """
    Dependency that yields a database session for a single request,
    and ensures the session is closed afterward.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
