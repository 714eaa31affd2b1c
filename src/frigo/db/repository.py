"""SQLite engine and session management for the key-value table."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from frigo.config import get_settings
from frigo.db.models import Base

_engine: Engine | None = None
_engine_path: Path | None = None
_session_factory: sessionmaker[Session] | None = None
logger = logging.getLogger(__name__)


def _enable_wal(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def get_engine(database_path: Path | None = None) -> Engine:
    """Return the shared engine, rebuilding it when a different database is requested."""
    global _engine, _engine_path, _session_factory

    db_path = database_path or get_settings().database_path
    if _engine is not None and _engine_path == db_path:
        return _engine
    if _engine is not None:
        reset_repository_state()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}", future=True, echo=False)
    event.listen(engine, "connect", _enable_wal)
    Base.metadata.create_all(engine)
    logger.debug("Opened key-value database at %s", db_path)

    _engine = engine
    _engine_path = db_path
    _session_factory = sessionmaker(bind=engine, autoflush=False, future=True)
    return engine


def get_session() -> Session:
    """Return a new SQLAlchemy session bound to the shared engine."""

    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Context manager yielding a session with automatic commit/rollback."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_repository_state() -> None:
    """Dispose the cached engine (intended for tests and database switches)."""

    global _engine, _engine_path, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_path = None
    _session_factory = None


__all__ = ["get_engine", "get_session", "session_scope", "reset_repository_state"]
