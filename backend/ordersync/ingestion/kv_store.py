"""
Durable key-value store on SQLAlchemy.

Values are JSON.  Every call runs in its own short session and commits
before returning, so a value that ``set`` returned from is on disk.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Engine

from ordersync.core.logging import get_logger
from ordersync.db.models import KeyValueEntry
from ordersync.db.session import create_session_factory, create_store_engine

logger = get_logger(__name__)


class SqlKeyValueStore:
    """``get/set/has/delete`` over the ``kv_entries`` table."""

    def __init__(self, database_url: str | None = None, *, engine: Engine | None = None) -> None:
        if engine is None:
            if not database_url:
                raise ValueError("SqlKeyValueStore needs a database_url or an engine")
            engine = create_store_engine(database_url)
        self.engine = engine
        self._sessions = create_session_factory(engine)

    def get(self, key: str, default: Any = None) -> Any:
        with self._sessions() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None or entry.value is None:
                return default
            return entry.value

    def set(self, key: str, value: Any) -> None:
        with self._sessions.begin() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
        logger.debug("Store value written", key=key)

    def has(self, key: str) -> bool:
        with self._sessions() as session:
            return session.get(KeyValueEntry, key) is not None

    def delete(self, key: str) -> None:
        with self._sessions.begin() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)

    def close(self) -> None:
        self.engine.dispose()
