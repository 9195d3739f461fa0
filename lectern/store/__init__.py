# lectern/store/__init__.py
# ==========================
# Persistence Layer
#
#   - Database: SQLite file, schema creation, per-operation connections
#   - TranscriptStore: sessions + append-only final transcript segments
#   - CacheStore / SQLiteCacheStore: per-(session, language) summary text
#   - TranslationCache: expiring per-(utterance, language) translations

from lectern.store.cache import CacheStore, SQLiteCacheStore  # noqa: F401
from lectern.store.database import Database  # noqa: F401
from lectern.store.transcript_store import TranscriptStore  # noqa: F401
from lectern.store.translation_cache import TranslationCache  # noqa: F401

__all__ = [
    "CacheStore",
    "Database",
    "SQLiteCacheStore",
    "TranscriptStore",
    "TranslationCache",
]
