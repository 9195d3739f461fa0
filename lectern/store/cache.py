"""
lectern/store/cache.py
=======================
Summary Cache Store

Keyed upsert/read of generated text per (session id, language code). The last
write for a key wins. There is no eviction: rows live as long as their session
row does (the foreign key cascades on delete).
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from lectern.errors import PersistenceError
from lectern.store.database import Database

logger = logging.getLogger("lectern.store.cache")


class CacheStore(ABC):
    """Interface the summary pipeline reads and writes through."""

    @abstractmethod
    def put(self, session_id: str, language: str, text: str) -> None:
        ...

    @abstractmethod
    def get(self, session_id: str, language: str) -> str | None:
        ...


class SQLiteCacheStore(CacheStore):
    """CacheStore backed by the session_summary_cache table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def put(self, session_id: str, language: str, text: str) -> None:
        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            with self._db.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO session_summary_cache
                        (session_id, language_code, summary_text, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(session_id, language_code)
                    DO UPDATE SET summary_text = excluded.summary_text,
                                  updated_at = excluded.updated_at
                    """,
                    (session_id, language, text, updated_at),
                )
        except sqlite3.Error as exc:
            raise PersistenceError("cache_put", str(exc), session_id) from exc
        logger.debug("Cached %s summary for session %s", language, session_id)

    def get(self, session_id: str, language: str) -> str | None:
        try:
            with self._db.connect() as conn:
                row = conn.execute(
                    "SELECT summary_text FROM session_summary_cache "
                    "WHERE session_id = ? AND language_code = ?",
                    (session_id, language),
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError("cache_get", str(exc), session_id) from exc
        return row[0] if row else None
