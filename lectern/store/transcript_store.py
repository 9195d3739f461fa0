"""
lectern/store/transcript_store.py
==================================
Durable Transcript Store

Responsibility:
    - Persist sessions and their lifecycle (create, end)
    - Append finalized transcript segments
    - Return a session's final segments in creation order
    - Hold the canonical summary field of a session

Segments are append-only. Ordering is ``created_at`` ascending with the
insertion sequence as tie-break, so two segments written in the same
microsecond still read back in the order they were appended.

Every sqlite3 failure is re-raised as PersistenceError naming the operation
and the session id.
"""

import logging
import sqlite3
import uuid
from datetime import datetime, timezone

from lectern.categories import Category
from lectern.errors import PersistenceError
from lectern.models import Session, SessionStatus, TranscriptSegment
from lectern.store.database import Database

logger = logging.getLogger("lectern.store.transcript_store")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        id=row["id"],
        title=row["title"],
        host_id=row["host_id"],
        host_name=row["host_name"],
        primary_language=row["primary_language"],
        status=SessionStatus(row["status"]),
        category=Category.normalize(row["category"]),
        summary=row["summary"],
        created_at=_parse_ts(row["created_at"]),
        ended_at=_parse_ts(row["ended_at"]),
    )


def _row_to_segment(row: sqlite3.Row) -> TranscriptSegment:
    return TranscriptSegment(
        id=row["id"],
        session_id=row["session_id"],
        text=row["original_text"],
        is_final=bool(row["is_final"]),
        created_at=_parse_ts(row["created_at"]),
    )


class TranscriptStore:
    """Session and segment persistence on top of a Database."""

    def __init__(self, database: Database) -> None:
        self._db = database

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(
        self,
        title: str,
        host_id: str,
        host_name: str,
        category: Category | str | None = None,
        primary_language: str = "en",
        session_id: str | None = None,
    ) -> Session:
        session = Session(
            id=session_id or str(uuid.uuid4()),
            title=title,
            host_id=host_id,
            host_name=host_name,
            primary_language=primary_language,
            status=SessionStatus.ACTIVE,
            category=Category.normalize(category),
            summary=None,
            created_at=_now(),
        )
        try:
            with self._db.connect() as conn:
                conn.execute(
                    "INSERT INTO sessions (id, title, host_id, host_name, "
                    "primary_language, status, category, summary, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, NULL, ?)",
                    (
                        session.id,
                        session.title,
                        session.host_id,
                        session.host_name,
                        session.primary_language,
                        session.status.value,
                        session.category.value,
                        session.created_at.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError("create_session", str(exc), session.id) from exc

        logger.info(
            "Session %s created (category=%s, host=%s)",
            session.id, session.category.value, session.host_id,
        )
        return session

    def get_session(self, session_id: str) -> Session | None:
        try:
            with self._db.connect() as conn:
                row = conn.execute(
                    "SELECT * FROM sessions WHERE id = ?", (session_id,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError("get_session", str(exc), session_id) from exc
        return _row_to_session(row) if row else None

    def end_session(self, session_id: str) -> Session | None:
        """Mark a session ended. Returns the updated session, or None if absent."""
        ended_at = _now().isoformat()
        try:
            with self._db.connect() as conn:
                cur = conn.execute(
                    "UPDATE sessions SET status = ?, ended_at = ? WHERE id = ?",
                    (SessionStatus.ENDED.value, ended_at, session_id),
                )
                if cur.rowcount == 0:
                    return None
                row = conn.execute(
                    "SELECT * FROM sessions WHERE id = ?", (session_id,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError("end_session", str(exc), session_id) from exc
        return _row_to_session(row)

    def set_summary(self, session_id: str, summary: str) -> None:
        try:
            with self._db.connect() as conn:
                conn.execute(
                    "UPDATE sessions SET summary = ? WHERE id = ?",
                    (summary, session_id),
                )
        except sqlite3.Error as exc:
            raise PersistenceError("set_summary", str(exc), session_id) from exc

    # ------------------------------------------------------------------
    # Transcript segments
    # ------------------------------------------------------------------

    def insert_segment(self, session_id: str, text: str) -> TranscriptSegment:
        segment = TranscriptSegment(
            id=str(uuid.uuid4()),
            session_id=session_id,
            text=text,
            is_final=True,
            created_at=_now(),
        )
        try:
            with self._db.connect() as conn:
                conn.execute(
                    "INSERT INTO transcripts (id, session_id, original_text, "
                    "is_final, created_at) VALUES (?, ?, ?, 1, ?)",
                    (
                        segment.id,
                        segment.session_id,
                        segment.text,
                        segment.created_at.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError("insert_segment", str(exc), session_id) from exc
        return segment

    def list_final_segments(self, session_id: str) -> list[TranscriptSegment]:
        try:
            with self._db.connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM transcripts WHERE session_id = ? AND is_final = 1 "
                    "ORDER BY created_at ASC, seq ASC",
                    (session_id,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(
                "list_final_segments", str(exc), session_id
            ) from exc
        return [_row_to_segment(row) for row in rows]

    def count_segments(self, session_id: str) -> int:
        try:
            with self._db.connect() as conn:
                row = conn.execute(
                    "SELECT COUNT(*) FROM transcripts WHERE session_id = ?",
                    (session_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError("count_segments", str(exc), session_id) from exc
        return int(row[0])
