"""
lectern/store/database.py
==========================
SQLite Connection Helper

Responsibility:
    - Own the database file location and create its parent directory
    - Create the sessions, transcripts, session_summary_cache and
      translation_cache tables idempotently
    - Hand out short-lived connections serialized by a process-wide lock

sqlite3 connections are opened per operation, so the helper is safe to use
from the worker threads FastAPI dispatches blocking calls onto.

This module does NOT:
    - Know anything about sessions, segments or summaries beyond the schema
    - Translate sqlite3 errors (callers wrap them in PersistenceError)
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger("lectern.store.database")


_SCHEMA: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        host_id TEXT NOT NULL,
        host_name TEXT NOT NULL,
        primary_language TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'active'
            CHECK (status IN ('active', 'ended')),
        category TEXT NOT NULL DEFAULT 'general',
        summary TEXT,
        created_at TEXT NOT NULL,
        ended_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transcripts (
        seq INTEGER PRIMARY KEY AUTOINCREMENT,
        id TEXT NOT NULL UNIQUE,
        session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
        original_text TEXT NOT NULL,
        is_final INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_transcripts_session_created
    ON transcripts(session_id, created_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS session_summary_cache (
        session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
        language_code TEXT NOT NULL,
        summary_text TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (session_id, language_code)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS translation_cache (
        content_hash TEXT NOT NULL,
        target_language TEXT NOT NULL,
        original_text TEXT NOT NULL,
        translated_text TEXT NOT NULL,
        source_language TEXT NOT NULL,
        translation_engine TEXT NOT NULL,
        confidence REAL NOT NULL,
        usage_count INTEGER NOT NULL DEFAULT 1,
        created_at REAL NOT NULL,
        expires_at REAL NOT NULL,
        PRIMARY KEY (content_hash, target_language)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_translation_cache_expires
    ON translation_cache(expires_at)
    """,
)


class Database:
    """Small wrapper around a single SQLite file."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and rolls back on error."""
        with self._lock:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            try:
                conn.execute("PRAGMA foreign_keys = ON")
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def _init_schema(self) -> None:
        with self.connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        logger.info("Database ready at %s", self.db_path)
