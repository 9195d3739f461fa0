"""
lectern/transcript/aggregator.py
=================================
Session Transcript Aggregator

Responsibility:
    - Keep a process-local running transcript per live session
    - Append finalized speech segments and mirror each one to the
      durable transcript store
    - Answer status polls from memory without touching the store
    - Drop buffers on session end or after a period of inactivity

Concurrency:
    Each session id owns its own lock. Appends for one session are
    serialized (buffer order and persisted creation order stay identical),
    while appends for different sessions never wait on each other. The
    registry lock only guards the dict of entries, never a provider or
    store call.

The buffer is best-effort. If the durable write fails the append is kept
in memory and the failure is logged, so the buffer may run ahead of the
store. The store remains the source of truth.

This module does NOT:
    - Persist partial (non-final) segments
    - Generate summaries or translations
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from lectern.errors import PersistenceError, SessionNotFoundError
from lectern.store.transcript_store import TranscriptStore

logger = logging.getLogger("lectern.transcript.aggregator")


@dataclass
class AggregatorState:
    """Running transcript for one session."""

    transcript: str = ""
    last_update: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # monotonic clock reading for idle eviction; wall time is for callers
    last_touch: float = field(default_factory=time.monotonic)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


@dataclass(frozen=True)
class BufferSnapshot:
    transcript: str
    last_update: datetime

    def to_dict(self) -> dict:
        return {
            "transcript": self.transcript,
            "lastUpdate": self.last_update.isoformat(),
        }


class TranscriptAggregator:
    """In-memory transcript buffers keyed by session id."""

    def __init__(self, store: TranscriptStore | None) -> None:
        self._store = store
        self._states: dict[str, AggregatorState] = {}
        self._registry_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start_session(self, session_id: str) -> None:
        """Create or reset the buffer for ``session_id``."""
        with self._registry_lock:
            existed = session_id in self._states
            self._states[session_id] = AggregatorState()
        if existed:
            logger.info("Session %s already buffered, reinitializing", session_id)
        else:
            logger.info("Session %s started", session_id)

    def append_segment(self, session_id: str, text: str, is_final: bool) -> int:
        """
        Add a speech segment to the session buffer.

        Partial segments are ignored entirely. A final, non-blank segment is
        appended as ``text + " "`` and written to the durable store with its
        surrounding whitespace trimmed.

        Args:
            session_id: Target session, which must have been started.
            text:       Segment text from the capture client.
            is_final:   Whether the capture system marked the text stable.

        Returns:
            Current buffer length in characters.

        Raises:
            SessionNotFoundError: If the session has no buffer.
        """
        state = self._get_state(session_id)

        with state.lock:
            if not is_final or not text or not text.strip():
                return len(state.transcript)

            state.transcript += text + " "
            state.last_update = datetime.now(timezone.utc)
            state.last_touch = time.monotonic()
            length = len(state.transcript)

            if self._store is not None:
                try:
                    self._store.insert_segment(session_id, text.strip())
                except PersistenceError as exc:
                    logger.error(
                        "Segment for session %s kept in memory only: %s",
                        session_id, exc,
                    )

        logger.debug("Session %s buffer now %d chars", session_id, length)
        return length

    def get_buffer(self, session_id: str) -> BufferSnapshot:
        state = self._get_state(session_id)
        with state.lock:
            return BufferSnapshot(state.transcript, state.last_update)

    def end_session(self, session_id: str) -> bool:
        """Drop the buffer. Persisted segments are untouched."""
        with self._registry_lock:
            existed = self._states.pop(session_id, None) is not None
        if existed:
            logger.info("Session %s buffer released", session_id)
        else:
            logger.info("Session %s had no buffer (already ended?)", session_id)
        return existed

    def evict_idle(self, max_idle_seconds: float) -> list[str]:
        """Release buffers that have not been touched for ``max_idle_seconds``."""
        cutoff = time.monotonic() - max_idle_seconds
        with self._registry_lock:
            stale = [
                sid for sid, state in self._states.items()
                if state.last_touch < cutoff
            ]
            for sid in stale:
                del self._states[sid]
        for sid in stale:
            logger.info("Session %s buffer evicted after %.0fs idle", sid, max_idle_seconds)
        return stale

    def active_session_ids(self) -> list[str]:
        with self._registry_lock:
            return list(self._states)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_state(self, session_id: str) -> AggregatorState:
        with self._registry_lock:
            state = self._states.get(session_id)
        if state is None:
            raise SessionNotFoundError(
                session_id, f"Session {session_id} has not been started"
            )
        return state
