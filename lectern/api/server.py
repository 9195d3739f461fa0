"""
lectern/api/server.py
======================
HTTP API

Responsibility:
    - Expose session, segment, summary and translation operations
    - Wrap every answer in the success/error envelope:
          {"success": true,  "data":  {...}}
          {"success": false, "error": {"kind": "...", "message": "..."}}
    - Map the LecternError taxonomy to HTTP status codes
    - Hide unexpected failures behind an opaque 500 while logging the
      full traceback server-side

Blocking core work (SQLite, provider HTTP calls) runs on worker threads via
asyncio.to_thread so independent sessions proceed in parallel.

Endpoints:
    GET  /health
    POST /session
    POST /session/{id}/start
    POST /session/{id}/segment      {text, isFinal}
    GET  /session/{id}/transcript
    POST /session/{id}/summary      {force?}
    GET  /session/{id}/summary?lang=
    POST /session/{id}/end          {hostId}
    POST /translate                 {text, targetLanguage, sourceLanguage?}

Utterance translations are served from the translation cache when a live
entry exists. Fresh results from real providers are written back.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone

from fastapi import BackgroundTasks, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lectern.api.schemas import (
    CreateSessionRequest,
    EndSessionRequest,
    SegmentRequest,
    SummaryRequest,
    TranslateRequest,
)
from lectern.auth import verify_host, verify_principal
from lectern.config import Settings
from lectern.errors import (
    LecternError,
    PersistenceError,
    SessionNotFoundError,
    ValidationError,
)
from lectern.models import TranslationResult
from lectern.services import Services, build_services

logger = logging.getLogger("lectern.api.server")

EVICTION_INTERVAL_SECONDS = 60.0


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------


def _ok(data: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": data})


def _error(kind: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"kind": kind, "message": message}},
    )


# ---------------------------------------------------------------------------
# Background jobs
# ---------------------------------------------------------------------------


async def _idle_eviction_watchdog(services: Services) -> None:
    """Release aggregator buffers that stopped receiving segments."""
    max_idle = services.settings.session_idle_seconds
    while True:
        await asyncio.sleep(EVICTION_INTERVAL_SECONDS)
        evicted = services.aggregator.evict_idle(max_idle)
        if evicted:
            logger.info("Idle eviction released %d session buffer(s)", len(evicted))
        try:
            await asyncio.to_thread(services.translation_cache.cleanup_expired)
        except PersistenceError as exc:
            logger.warning("Translation cache cleanup failed: %s", exc)


def _translate_with_cache(
    services: Services,
    text: str,
    target_language: str,
    source_language: str | None,
) -> tuple[TranslationResult, bool]:
    """Serve from the translation cache, or translate and remember the result."""
    target = target_language.strip().lower()
    cacheable = bool(text.strip()) and bool(target)

    if cacheable:
        try:
            cached = services.translation_cache.get(text, target)
        except PersistenceError as exc:
            logger.warning("Translation cache read failed: %s", exc)
            cached = None
        if cached is not None:
            return cached, True

    result = services.translator.translate(text, target_language, source_language)

    if cacheable:
        try:
            services.translation_cache.put(text, result)
        except PersistenceError as exc:
            logger.warning("Translation cache write failed: %s", exc)
    return result, False


def _generate_summary_after_end(services: Services, session_id: str) -> None:
    try:
        result = services.summaries.generate(session_id)
        logger.info(
            "Summary for ended session %s ready (fromCache=%s)",
            session_id, result.from_cache,
        )
    except LecternError as exc:
        logger.error("Summary after end failed for session %s: %s", session_id, exc)
    except Exception:
        logger.exception("Unexpected error generating summary for session %s", session_id)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built collaborators (tests inject these).
        settings: Used to build services when none are given; defaults to
                  Settings.from_env().
    """
    if services is None:
        services = build_services(settings or Settings.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        watchdog = asyncio.create_task(_idle_eviction_watchdog(services))
        try:
            yield
        finally:
            watchdog.cancel()
            with suppress(asyncio.CancelledError):
                await watchdog

    app = FastAPI(
        title="Lectern",
        description="Live session transcripts, translation and categorized summaries.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------

    @app.exception_handler(LecternError)
    async def _lectern_error(request: Request, exc: LecternError):
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed (%s): %s",
                request.method, request.url.path, exc.kind, exc.message,
            )
        else:
            logger.info(
                "%s %s rejected (%s): %s",
                request.method, request.url.path, exc.kind, exc.message,
            )
        return _error(exc.kind, exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
        message = "Invalid request: " + ", ".join(fields) if fields else "Invalid request"
        return _error(ValidationError.kind, message, ValidationError.status_code)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.error(
            "Unhandled error on %s %s: %s",
            request.method, request.url.path, exc, exc_info=exc,
        )
        return _error("internal_error", "Internal server error", 500)

    # -----------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------

    @app.get("/health")
    async def health():
        return _ok({"ok": True})

    @app.post("/session")
    async def create_session(
        body: CreateSessionRequest,
        principal_id: str | None = Header(default=None, alias="X-Principal-Id"),
    ):
        host_id = verify_principal(principal_id, body.host_id)
        session = await asyncio.to_thread(
            services.store.create_session,
            title=body.title,
            host_id=host_id,
            host_name=body.host_name,
            category=body.category,
            primary_language=(body.primary_language or services.settings.canonical_language),
        )
        return _ok({"session": session.to_dict()}, status_code=201)

    @app.post("/session/{session_id}/start")
    async def start_session(session_id: str):
        session = await asyncio.to_thread(services.store.get_session, session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        services.aggregator.start_session(session_id)
        return _ok({"sessionId": session_id})

    @app.post("/session/{session_id}/segment")
    async def append_segment(session_id: str, body: SegmentRequest):
        length = await asyncio.to_thread(
            services.aggregator.append_segment,
            session_id,
            body.text or "",
            body.is_final,
        )
        return _ok({"currentLength": length})

    @app.get("/session/{session_id}/transcript")
    async def get_transcript(session_id: str):
        snapshot = services.aggregator.get_buffer(session_id)
        return _ok(snapshot.to_dict())

    @app.post("/session/{session_id}/summary")
    async def generate_summary(session_id: str, body: SummaryRequest | None = None):
        force = bool(body and body.force)
        result = await asyncio.to_thread(services.summaries.generate, session_id, force)
        return _ok(result.to_dict())

    @app.get("/session/{session_id}/summary")
    async def get_summary(session_id: str, lang: str | None = None):
        view = await asyncio.to_thread(services.summaries.get_summary, session_id, lang)
        return _ok(view.to_dict())

    @app.post("/session/{session_id}/end")
    async def end_session(
        session_id: str,
        body: EndSessionRequest,
        background_tasks: BackgroundTasks,
        principal_id: str | None = Header(default=None, alias="X-Principal-Id"),
    ):
        session = await asyncio.to_thread(services.store.get_session, session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        verify_host(session, principal_id, body.host_id)

        await asyncio.to_thread(services.store.end_session, session_id)
        buffer_released = services.aggregator.end_session(session_id)
        transcript_count = await asyncio.to_thread(services.store.count_segments, session_id)
        duration = int((datetime.now(timezone.utc) - session.created_at).total_seconds())

        if services.settings.summary_on_end and transcript_count:
            background_tasks.add_task(_generate_summary_after_end, services, session_id)

        logger.info(
            "Session %s ended (segments=%d, duration=%ds)",
            session_id, transcript_count, duration,
        )
        return _ok({
            "message": "Session ended successfully",
            "bufferReleased": buffer_released,
            "statistics": {
                "transcriptCount": transcript_count,
                "duration": max(duration, 0),
            },
        })

    @app.post("/translate")
    async def translate(body: TranslateRequest):
        text = body.text or ""
        result, from_cache = await asyncio.to_thread(
            _translate_with_cache,
            services,
            text,
            body.target_language or "",
            body.source_language,
        )
        data = result.to_dict()
        data["fromCache"] = from_cache
        data["originalLength"] = len(text)
        data["translatedLength"] = len(result.translated_text)
        return _ok(data)

    return app
