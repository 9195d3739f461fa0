"""
lectern/summary/pipeline.py
============================
Session Summary Pipeline

Responsibility:
    - Generate one canonical-language summary per session from its final
      transcript segments, using a category-specific prompt
    - Fan the canonical summary out into cached translations for every
      configured target language
    - Serve summaries per language with fallback to the canonical text

Summary lifecycle per session (SummaryState):

    NO_SUMMARY --generate--> GENERATING --success--> CACHED
    CACHED --generate(force=True)--> GENERATING

    A non-forced generate() on a CACHED session returns the stored summary
    with from_cache=True and calls no provider.

Single flight:
    At most one generation runs per session id. A request that arrives while
    one is GENERATING waits for it and receives the same summary (reported
    as from_cache=True), or the same error if it failed. A forced request
    waits for the running generation to finish and then runs its own.

Failure handling:
    - Generation failure raises GenerationError; nothing is written.
    - When the translation chain only reaches the deterministic mock, the
      summary is translated with the generation backend instead. Mock text
      is never cached.
    - A failed translation for one language is logged and skipped, so
      callers fall back to the canonical summary for that language.

This module does NOT:
    - Buffer live segments (see lectern.transcript)
    - Choose between translation providers (see lectern.translation)
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Sequence

from lectern.config import Settings
from lectern.errors import (
    GenerationError,
    LecternError,
    NoTranscriptError,
    SessionNotFoundError,
)
from lectern.models import Session, SummaryResult, SummaryState, SummaryView
from lectern.store.cache import CacheStore
from lectern.store.transcript_store import TranscriptStore
from lectern.summary.generators import SummaryGenerator
from lectern.summary.prompts import (
    SUMMARY_TRANSLATION_TEMPERATURE,
    build_summary_prompt,
    build_translation_prompt,
    join_segments,
    truncate_transcript,
)
from lectern.translation.orchestrator import TranslationOrchestrator
from lectern.translation.providers import MockTranslator

logger = logging.getLogger("lectern.summary.pipeline")

DEFAULT_MAX_TRANSCRIPT_CHARS = 8000


@dataclass
class _InFlight:
    done: threading.Event = field(default_factory=threading.Event)
    result: SummaryResult | None = None
    error: BaseException | None = None


class SummaryPipeline:
    """Generates, caches and serves per-language session summaries."""

    def __init__(
        self,
        store: TranscriptStore,
        cache: CacheStore,
        generator: SummaryGenerator,
        translator: TranslationOrchestrator,
        canonical_language: str = "en",
        target_languages: Sequence[str] = ("ko", "zh", "hi"),
        max_transcript_chars: int = DEFAULT_MAX_TRANSCRIPT_CHARS,
        wait_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._generator = generator
        self._translator = translator
        self.canonical_language = canonical_language
        self.target_languages = tuple(
            lang for lang in target_languages if lang != canonical_language
        )
        self._max_chars = max_transcript_chars
        self._wait_timeout = wait_timeout
        self._inflight: dict[str, _InFlight] = {}
        self._inflight_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: TranscriptStore,
        cache: CacheStore,
        generator: SummaryGenerator,
        translator: TranslationOrchestrator,
    ) -> "SummaryPipeline":
        # one generation call plus, per language, two chained translation
        # providers and the generator fallback, each bounded by the timeout
        calls = 1 + 3 * len(settings.target_languages)
        wait = settings.provider_timeout_seconds * calls * (settings.provider_max_retries + 1)
        return cls(
            store=store,
            cache=cache,
            generator=generator,
            translator=translator,
            canonical_language=settings.canonical_language,
            target_languages=settings.target_languages,
            max_transcript_chars=settings.max_transcript_chars,
            wait_timeout=wait + 5.0,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def summary_state(self, session_id: str) -> SummaryState:
        with self._inflight_lock:
            if session_id in self._inflight:
                return SummaryState.GENERATING
        session = self._load_session(session_id)
        return session.summary_state

    def generate(self, session_id: str, force: bool = False) -> SummaryResult:
        """
        Produce the canonical summary for a session.

        Args:
            session_id: Session to summarize.
            force:      Regenerate even if a summary already exists.

        Returns:
            SummaryResult with the summary, the session category, the number
            of transcript segments used and whether it came from the cache.

        Raises:
            SessionNotFoundError: Unknown session.
            NoTranscriptError:    The session has no final segments.
            GenerationError:      The generation provider failed.
            PersistenceError:     The summary could not be stored.
        """
        session = self._load_session(session_id)
        if not force and session.summary:
            logger.info("Summary already exists for session %s", session_id)
            return self._cached_result(session)

        while True:
            with self._inflight_lock:
                flight = self._inflight.get(session_id)
                if flight is None:
                    flight = _InFlight()
                    self._inflight[session_id] = flight
                    break
            if not force:
                return self._await_inflight(session_id, flight)
            # a forced request never reuses a run that started before it
            logger.info(
                "Forced generation for session %s queued behind the running one",
                session_id,
            )
            self._wait_for_flight(session_id, flight)

        try:
            if not force:
                # another request may have finished between our read and the claim
                session = self._load_session(session_id)
                if session.summary:
                    result = self._cached_result(session)
                    flight.result = result
                    return result
            result = self._run(session)
            flight.result = result
            return result
        except BaseException as exc:
            flight.error = exc
            raise
        finally:
            with self._inflight_lock:
                self._inflight.pop(session_id, None)
            flight.done.set()

    def get_summary(self, session_id: str, language: str | None = None) -> SummaryView:
        """Summary in ``language``, falling back to the canonical summary on a cache miss."""
        lang = (language or self.canonical_language).strip().lower() or self.canonical_language
        session = self._load_session(session_id)

        summary = session.summary
        from_cache = False
        if lang != self.canonical_language:
            cached = self._cache.get(session_id, lang)
            if cached:
                summary = cached
                from_cache = True
                logger.debug("Retrieved %s summary for session %s from cache", lang, session_id)
            else:
                logger.info(
                    "No %s summary cached for session %s, using %s",
                    lang, session_id, self.canonical_language,
                )

        return SummaryView(
            summary=summary,
            category=session.category,
            title=session.title,
            has_summary=bool(session.summary),
            language=lang,
            from_cache=from_cache,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_session(self, session_id: str) -> Session:
        session = self._store.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @staticmethod
    def _cached_result(session: Session) -> SummaryResult:
        return SummaryResult(
            summary=session.summary,
            category=session.category,
            transcript_count=0,
            from_cache=True,
        )

    def _wait_for_flight(self, session_id: str, flight: _InFlight) -> None:
        if not flight.done.wait(self._wait_timeout):
            raise GenerationError(
                "summary", f"Timed out waiting for in-flight generation of {session_id}"
            )

    def _await_inflight(self, session_id: str, flight: _InFlight) -> SummaryResult:
        logger.info("Generation already running for session %s, waiting", session_id)
        self._wait_for_flight(session_id, flight)
        if flight.error is not None:
            raise flight.error
        return replace(flight.result, from_cache=True)

    def _run(self, session: Session) -> SummaryResult:
        segments = self._store.list_final_segments(session.id)
        if not segments:
            raise NoTranscriptError(session.id)

        transcript = truncate_transcript(
            join_segments([seg.text for seg in segments]), self._max_chars,
        )
        prompt = build_summary_prompt(session.category, transcript)

        logger.info(
            "Generating %s summary for session %s (category=%s, segments=%d, chars=%d)",
            self.canonical_language, session.id, session.category.value,
            len(segments), len(transcript),
        )
        summary = self._generator.generate(prompt)
        if not summary or not summary.strip():
            raise GenerationError(self._generator.name, "empty summary")
        summary = summary.strip()

        self._store.set_summary(session.id, summary)
        logger.info("Canonical summary stored for session %s", session.id)

        self._fan_out(session.id, summary)

        return SummaryResult(
            summary=summary,
            category=session.category,
            transcript_count=len(segments),
            from_cache=False,
        )

    def _fan_out(self, session_id: str, summary: str) -> None:
        """Cache the canonical summary and its translations; never raises."""
        try:
            self._cache.put(session_id, self.canonical_language, summary)
        except LecternError as exc:
            logger.error("Could not cache canonical summary for %s: %s", session_id, exc)

        for lang in self.target_languages:
            try:
                result = self._translator.translate(
                    summary, lang, source_language=self.canonical_language,
                )
                translated, provider = result.translated_text, result.provider
                if provider == MockTranslator.name:
                    translated = self._translate_with_generator(session_id, summary, lang)
                    provider = self._generator.name
                    if translated is None:
                        continue
                self._cache.put(session_id, lang, translated)
                logger.info(
                    "Cached %s summary for session %s (provider=%s)",
                    lang, session_id, provider,
                )
            except Exception as exc:
                logger.error(
                    "Summary translation to %s failed for session %s: %s",
                    lang, session_id, exc,
                )

    def _translate_with_generator(self, session_id: str, summary: str, lang: str) -> str | None:
        """Translate a summary with the generation backend; None when it fails."""
        prompt = build_translation_prompt(summary, lang, self.canonical_language)
        try:
            translated = self._generator.generate(
                prompt, temperature=SUMMARY_TRANSLATION_TEMPERATURE,
            )
        except GenerationError as exc:
            logger.warning(
                "No translation for %s summary of session %s: %s", lang, session_id, exc,
            )
            return None
        if not translated or not translated.strip():
            logger.warning(
                "Empty %s summary translation for session %s", lang, session_id,
            )
            return None
        return translated.strip()
