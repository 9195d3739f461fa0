"""
lectern/errors.py
==================
Error Taxonomy

Every failure the service can report carries a machine-readable ``kind`` and
the HTTP status the API layer answers with. Handlers never need to inspect
the message text to decide how to respond.

Provider and configuration errors are normally recovered inside the
translation fallback chain. They only reach a caller from the summary
generation step, which has no alternative provider.
"""


class LecternError(Exception):
    """Base class for all service errors."""

    kind: str = "internal_error"
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LecternError):
    """A required field is missing or malformed."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(LecternError):
    """A requested resource does not exist."""

    kind = "not_found"
    status_code = 404


class SessionNotFoundError(NotFoundError):
    """The session is unknown to the store or was never started."""

    def __init__(self, session_id: str, message: str | None = None):
        self.session_id = session_id
        super().__init__(message or f"Session not found: {session_id}")


class NoTranscriptError(NotFoundError):
    """The session has no final transcript segments to summarize."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"No transcripts found for session {session_id}")


class ForbiddenError(LecternError):
    """The verified principal does not match the claimed user."""

    kind = "forbidden"
    status_code = 403


class ConfigError(LecternError):
    """A provider credential or setting is absent."""

    kind = "config_error"


class ProviderError(LecternError):
    """An external provider failed: network, non-2xx, timeout or empty output."""

    kind = "provider_error"

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class GenerationError(ProviderError):
    """Summary generation failed and there is no provider to fall back to."""

    kind = "generation_error"


class PersistenceError(LecternError):
    """The durable store rejected a read or write."""

    kind = "persistence_error"

    def __init__(self, operation: str, message: str, session_id: str | None = None):
        self.operation = operation
        self.session_id = session_id
        super().__init__(
            f"{operation} failed (session={session_id}): {message}"
        )
