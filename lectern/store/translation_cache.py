"""
lectern/store/translation_cache.py
===================================
Utterance Translation Cache

Live sessions send the same utterance to every listener, so a translation is
stored once per (text, target language) and reused until it expires.

Rows are keyed by ``sha256("<text>:<target>")`` plus the target code. Each
row remembers the provider that produced it, its confidence and how often it
was served. Retention depends on the provider:

    primary    30 days
    secondary  14 days
    other       7 days

Results from the ``mock`` and ``skip`` paths are never stored.
"""

import hashlib
import logging
import sqlite3
import time
from typing import Callable

from lectern.errors import PersistenceError
from lectern.models import TranslationResult
from lectern.store.database import Database

logger = logging.getLogger("lectern.store.translation_cache")

DAY_SECONDS = 24 * 60 * 60

RETENTION_DAYS: dict[str, int] = {
    "primary": 30,
    "secondary": 14,
}
DEFAULT_RETENTION_DAYS = 7

UNCACHEABLE_PROVIDERS = frozenset({"mock", "skip"})


def content_hash(text: str, target_language: str) -> str:
    return hashlib.sha256(f"{text}:{target_language}".encode("utf-8")).hexdigest()


class TranslationCache:
    """Expiring SQLite cache of individual translations."""

    def __init__(self, database: Database, clock: Callable[[], float] = time.time) -> None:
        self._db = database
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, text: str, target_language: str) -> TranslationResult | None:
        """Return the live cached translation and bump its usage count."""
        key = content_hash(text, target_language)
        now = self._clock()
        try:
            with self._db.connect() as conn:
                row = conn.execute(
                    """
                    SELECT translated_text, source_language, translation_engine, confidence
                    FROM translation_cache
                    WHERE content_hash = ? AND target_language = ? AND expires_at >= ?
                    """,
                    (key, target_language, now),
                ).fetchone()
                if row is None:
                    logger.debug("Translation cache miss for %s (%s)", key[:12], target_language)
                    return None
                conn.execute(
                    "UPDATE translation_cache SET usage_count = usage_count + 1 "
                    "WHERE content_hash = ? AND target_language = ?",
                    (key, target_language),
                )
        except sqlite3.Error as exc:
            raise PersistenceError("translation_cache_get", str(exc)) from exc

        logger.debug(
            "Translation cache hit for %s (%s, %s)",
            key[:12], target_language, row["translation_engine"],
        )
        return TranslationResult(
            translated_text=row["translated_text"],
            source_language=row["source_language"],
            target_language=target_language,
            confidence=row["confidence"],
            provider=row["translation_engine"],
        )

    def put(self, text: str, result: TranslationResult) -> bool:
        """Store ``result`` for ``text``. Returns False for uncacheable results."""
        if result.provider in UNCACHEABLE_PROVIDERS:
            return False

        now = self._clock()
        days = RETENTION_DAYS.get(result.provider, DEFAULT_RETENTION_DAYS)
        try:
            with self._db.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO translation_cache
                        (content_hash, target_language, original_text, translated_text,
                         source_language, translation_engine, confidence,
                         usage_count, created_at, expires_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
                    ON CONFLICT(content_hash, target_language)
                    DO UPDATE SET translated_text = excluded.translated_text,
                                  source_language = excluded.source_language,
                                  translation_engine = excluded.translation_engine,
                                  confidence = excluded.confidence,
                                  created_at = excluded.created_at,
                                  expires_at = excluded.expires_at
                    """,
                    (
                        content_hash(text, result.target_language),
                        result.target_language,
                        text,
                        result.translated_text,
                        result.source_language,
                        result.provider,
                        result.confidence,
                        now,
                        now + days * DAY_SECONDS,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError("translation_cache_put", str(exc)) from exc
        return True

    def usage_count(self, text: str, target_language: str) -> int:
        """Times a cached translation was stored or served; 0 when absent."""
        try:
            with self._db.connect() as conn:
                row = conn.execute(
                    "SELECT usage_count FROM translation_cache "
                    "WHERE content_hash = ? AND target_language = ?",
                    (content_hash(text, target_language), target_language),
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError("translation_cache_usage", str(exc)) from exc
        return row[0] if row else 0

    def cleanup_expired(self) -> int:
        """Delete expired rows and return how many were removed."""
        try:
            with self._db.connect() as conn:
                cur = conn.execute(
                    "DELETE FROM translation_cache WHERE expires_at < ?",
                    (self._clock(),),
                )
                deleted = cur.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError("translation_cache_cleanup", str(exc)) from exc
        if deleted:
            logger.info("Removed %d expired translation(s)", deleted)
        return deleted
