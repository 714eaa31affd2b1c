"""Key-value storage capability used by the inventory store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from .models import KeyValueEntryORM
from .repository import get_engine, session_scope

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Synchronous string store; ``set`` reports failure instead of raising."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> bool:
        ...


class MemoryKeyValueStore:
    """In-process store, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> bool:
        self._values[key] = value
        return True


class SqlKeyValueStore:
    """Key-value entries persisted in the SQLite database."""

    def __init__(self, database_path: Optional[Path] = None) -> None:
        self._database_path = database_path

    def get(self, key: str) -> Optional[str]:
        try:
            get_engine(self._database_path)
            with session_scope() as session:
                row = session.get(KeyValueEntryORM, key)
                return row.value if row is not None else None
        except (SQLAlchemyError, OSError):
            logger.exception("Unable to read key %s from the database", key)
            return None

    def set(self, key: str, value: str) -> bool:
        try:
            get_engine(self._database_path)
            with session_scope() as session:
                row = session.get(KeyValueEntryORM, key)
                if row is None:
                    session.add(KeyValueEntryORM(key=key, value=value))
                else:
                    row.value = value
        except (SQLAlchemyError, OSError):
            logger.exception("Unable to write key %s to the database", key)
            return False
        return True


__all__ = ["KeyValueStore", "MemoryKeyValueStore", "SqlKeyValueStore"]
