"""
lectern/config.py
==================
Runtime Settings for Lectern

Responsibility:
    - Collect every environment-driven knob into one frozen Settings object
    - Apply documented defaults when a variable is absent
    - Decide which summary generation provider is active

Provider credentials are optional. A missing credential is a configuration
condition that selects a fallback path, never a startup failure.

``load_dotenv()`` is called by main.py before Settings.from_env() runs, so a
local ``.env`` file is honoured the same way real environment variables are.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger("lectern.config")


DEFAULT_DB_PATH = "data/lectern.db"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_CANONICAL_LANGUAGE = "en"
DEFAULT_SUMMARY_LANGUAGES: tuple[str, ...] = ("ko", "zh", "hi")
DEFAULT_MAX_TRANSCRIPT_CHARS = 8000
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 15.0
DEFAULT_PROVIDER_MAX_RETRIES = 1
DEFAULT_SESSION_IDLE_SECONDS = 3600

_TRUTHY = {"1", "true", "yes", "on"}


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name)
    if raw is None:
        return default
    return raw.lower() in _TRUTHY


def _env_languages(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = _env_str(name)
    if raw is None:
        return default
    codes = [code.strip().lower() for code in raw.split(",")]
    return tuple(code for code in codes if code)


@dataclass(frozen=True)
class Settings:
    """Immutable service configuration."""

    db_path: str = DEFAULT_DB_PATH

    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    google_translate_api_key: str | None = None
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    summary_provider: str | None = None  # "gemini" | "openai"; None = auto

    canonical_language: str = DEFAULT_CANONICAL_LANGUAGE
    summary_languages: tuple[str, ...] = field(default=DEFAULT_SUMMARY_LANGUAGES)
    max_transcript_chars: int = DEFAULT_MAX_TRANSCRIPT_CHARS

    provider_timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS
    provider_max_retries: int = DEFAULT_PROVIDER_MAX_RETRIES

    session_idle_seconds: int = DEFAULT_SESSION_IDLE_SECONDS
    summary_on_end: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build Settings from the process environment."""
        return cls(
            db_path=_env_str("LECTERN_DB_PATH", DEFAULT_DB_PATH),
            openai_api_key=_env_str("OPENAI_API_KEY"),
            openai_model=_env_str("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            google_translate_api_key=_env_str("GOOGLE_TRANSLATE_API_KEY"),
            gemini_api_key=_env_str("GEMINI_API_KEY"),
            gemini_model=_env_str("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            summary_provider=(_env_str("SUMMARY_PROVIDER") or "").lower() or None,
            canonical_language=_env_str(
                "CANONICAL_LANGUAGE", DEFAULT_CANONICAL_LANGUAGE
            ).lower(),
            summary_languages=_env_languages(
                "SUMMARY_LANGUAGES", DEFAULT_SUMMARY_LANGUAGES
            ),
            max_transcript_chars=_env_int(
                "MAX_TRANSCRIPT_CHARS", DEFAULT_MAX_TRANSCRIPT_CHARS
            ),
            provider_timeout_seconds=_env_float(
                "PROVIDER_TIMEOUT_SECONDS", DEFAULT_PROVIDER_TIMEOUT_SECONDS
            ),
            provider_max_retries=_env_int(
                "PROVIDER_MAX_RETRIES", DEFAULT_PROVIDER_MAX_RETRIES
            ),
            session_idle_seconds=_env_int(
                "SESSION_IDLE_SECONDS", DEFAULT_SESSION_IDLE_SECONDS
            ),
            summary_on_end=_env_bool("SUMMARY_ON_END", False),
            log_level=(_env_str("LOG_LEVEL", "INFO")).upper(),
        )

    @property
    def target_languages(self) -> tuple[str, ...]:
        """Summary fan-out languages, never including the canonical one."""
        return tuple(
            lang for lang in self.summary_languages
            if lang != self.canonical_language
        )

    def resolved_summary_provider(self) -> str:
        """
        Name of the generation provider used for summaries.

        An explicit SUMMARY_PROVIDER wins. Otherwise Gemini is preferred when
        its key is present, and OpenAI is used in every other case.
        """
        if self.summary_provider in ("gemini", "openai"):
            return self.summary_provider
        if self.summary_provider:
            logger.warning(
                "Unknown SUMMARY_PROVIDER=%r, choosing automatically.",
                self.summary_provider,
            )
        return "gemini" if self.gemini_api_key else "openai"
