"""
tests/test_store.py
====================
Durable Store Tests

Test categories:
    1. Session persistence (create, read, end, summary field)
    2. Transcript segments (append, ordering, counts, foreign key)
    3. Summary cache (upsert, last write wins, misses)

All tests use a throwaway SQLite file per test.
"""

import os
import sys
import tempfile
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from lectern.categories import Category
from lectern.errors import PersistenceError
from lectern.models import SessionStatus, SummaryState
from lectern.store import Database, SQLiteCacheStore, TranscriptStore


class _StoreTestCase(unittest.TestCase):

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.database = Database(os.path.join(tmp.name, "nested", "lectern.db"))
        self.store = TranscriptStore(self.database)
        self.cache = SQLiteCacheStore(self.database)

    def _session(self, **overrides):
        params = {"title": "Keynote", "host_id": "host-1", "host_name": "Host"}
        params.update(overrides)
        return self.store.create_session(**params)


# ===================================================================
# 1. SESSIONS
# ===================================================================


class TestSessions(_StoreTestCase):

    def test_database_creates_parent_directory(self):
        self.assertTrue(self.database.db_path.exists())

    def test_create_and_get(self):
        created = self._session(category="technology", primary_language="ko")
        loaded = self.store.get_session(created.id)
        self.assertEqual(loaded.id, created.id)
        self.assertEqual(loaded.title, "Keynote")
        self.assertEqual(loaded.category, Category.TECHNOLOGY)
        self.assertEqual(loaded.primary_language, "ko")
        self.assertEqual(loaded.status, SessionStatus.ACTIVE)
        self.assertIsNone(loaded.summary)
        self.assertEqual(loaded.summary_state, SummaryState.NO_SUMMARY)

    def test_explicit_session_id(self):
        created = self._session(session_id="S1")
        self.assertEqual(created.id, "S1")
        self.assertIsNotNone(self.store.get_session("S1"))

    def test_default_category_is_general(self):
        self.assertEqual(self._session().category, Category.GENERAL)

    def test_unknown_category_normalized(self):
        created = self._session(category="cooking")
        self.assertEqual(self.store.get_session(created.id).category, Category.GENERAL)

    def test_missing_session_is_none(self):
        self.assertIsNone(self.store.get_session("nope"))

    def test_end_session(self):
        created = self._session()
        ended = self.store.end_session(created.id)
        self.assertEqual(ended.status, SessionStatus.ENDED)
        self.assertIsNotNone(ended.ended_at)

    def test_end_unknown_session_returns_none(self):
        self.assertIsNone(self.store.end_session("nope"))

    def test_set_summary(self):
        created = self._session()
        self.store.set_summary(created.id, "first")
        self.store.set_summary(created.id, "second")
        loaded = self.store.get_session(created.id)
        self.assertEqual(loaded.summary, "second")
        self.assertEqual(loaded.summary_state, SummaryState.CACHED)

    def test_duplicate_id_raises_persistence_error(self):
        self._session(session_id="dup")
        with self.assertRaises(PersistenceError) as ctx:
            self._session(session_id="dup")
        self.assertEqual(ctx.exception.operation, "create_session")
        self.assertEqual(ctx.exception.session_id, "dup")


# ===================================================================
# 2. TRANSCRIPT SEGMENTS
# ===================================================================


class TestSegments(_StoreTestCase):

    def test_segments_returned_in_append_order(self):
        sid = self._session().id
        for text in ("one", "two", "three", "four"):
            self.store.insert_segment(sid, text)
        texts = [seg.text for seg in self.store.list_final_segments(sid)]
        self.assertEqual(texts, ["one", "two", "three", "four"])

    def test_segments_are_final(self):
        sid = self._session().id
        segment = self.store.insert_segment(sid, "hello")
        self.assertTrue(segment.is_final)
        self.assertEqual(segment.session_id, sid)

    def test_segments_scoped_to_session(self):
        a = self._session().id
        b = self._session().id
        self.store.insert_segment(a, "alpha")
        self.store.insert_segment(b, "beta")
        self.assertEqual([s.text for s in self.store.list_final_segments(a)], ["alpha"])
        self.assertEqual(self.store.count_segments(b), 1)

    def test_count_segments_empty(self):
        self.assertEqual(self.store.count_segments(self._session().id), 0)

    def test_segment_for_unknown_session_rejected(self):
        with self.assertRaises(PersistenceError) as ctx:
            self.store.insert_segment("ghost", "hello")
        self.assertEqual(ctx.exception.operation, "insert_segment")


# ===================================================================
# 3. SUMMARY CACHE
# ===================================================================


class TestSummaryCache(_StoreTestCase):

    def test_miss_returns_none(self):
        sid = self._session().id
        self.assertIsNone(self.cache.get(sid, "ko"))

    def test_put_then_get(self):
        sid = self._session().id
        self.cache.put(sid, "ko", "요약")
        self.assertEqual(self.cache.get(sid, "ko"), "요약")

    def test_last_write_wins(self):
        sid = self._session().id
        self.cache.put(sid, "zh", "old")
        self.cache.put(sid, "zh", "new")
        self.assertEqual(self.cache.get(sid, "zh"), "new")

    def test_languages_are_independent(self):
        sid = self._session().id
        self.cache.put(sid, "ko", "k")
        self.cache.put(sid, "hi", "h")
        self.assertEqual(self.cache.get(sid, "ko"), "k")
        self.assertEqual(self.cache.get(sid, "hi"), "h")


if __name__ == "__main__":
    unittest.main(verbosity=2)
