"""Database connection and session management."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from stateable.core.config import get_config
from stateable.models.base import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def _build_engine(database_url: str) -> Engine:
    options: dict = {"echo": get_config().DEBUG, "pool_pre_ping": True}
    if not database_url.startswith("sqlite"):
        options.update(pool_recycle=3600, pool_size=10, max_overflow=20)
    return create_engine(database_url, **options)


def get_engine() -> Engine:
    """Return the active SQLAlchemy engine, building it on first use."""
    global _engine
    if _engine is None:
        reset_engine()
    return _engine


def reset_engine(database_url: str | None = None) -> Engine:
    """Rebind the engine and session factory to ``database_url`` (or the configured URL)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = _build_engine(database_url or get_config().DATABASE_URL)
    SessionLocal.configure(bind=_engine)
    return _engine


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context-manager wrapper for safe DB session lifecycle."""
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine | None = None) -> None:
    """Create history tables (and any host tables registered on ``Base``)."""
    target = engine or get_engine()
    Base.metadata.create_all(bind=target)
    logger.info("database.tables.created", extra={"event": "database.tables.created"})


def verify_database_connection() -> bool:
    """Verify DB connectivity."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("database.connection_failed", extra={"event": "database.connection_failed"})
        return False
