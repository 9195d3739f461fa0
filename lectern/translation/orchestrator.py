"""
lectern/translation/orchestrator.py
====================================
Translation Orchestrator

Responsibility:
    - Validate translate requests
    - Skip the provider chain for text that is already in the canonical
      language
    - Walk the provider chain in fixed priority order and return the first
      success, tagged with that provider's confidence

Contract:
    translate() always returns a TranslationResult. Provider failures and
    missing credentials only move the call further down the chain; the chain
    ends in MockTranslator, which cannot fail. The only exception raised to
    callers is ValidationError for missing arguments.

Confidence by provider (non-increasing along the chain):
    skip 1.0  >=  primary 0.9  >=  secondary 0.8  >=  mock 0.1
"""

import logging
import re
from typing import Sequence

from lectern.config import Settings
from lectern.errors import ConfigError, ProviderError, ValidationError
from lectern.models import TranslationResult
from lectern.translation.providers import (
    GoogleTranslateProvider,
    MockTranslator,
    OpenAITranslator,
    TranslationProvider,
)

logger = logging.getLogger("lectern.translation.orchestrator")

SKIP_PROVIDER = "skip"
SKIP_CONFIDENCE = 1.0

# ASCII letters, whitespace and basic punctuation only
_CANONICAL_TEXT_PATTERN = re.compile(r"^[a-zA-Z\s.,!?'-]+$")


def looks_canonical(text: str) -> bool:
    """Cheap check for text that needs no translation into English."""
    return bool(_CANONICAL_TEXT_PATTERN.match(text))


class TranslationOrchestrator:
    """Ordered provider chain with a guaranteed terminal fallback."""

    def __init__(
        self,
        providers: Sequence[TranslationProvider],
        canonical_language: str = "en",
    ) -> None:
        chain = list(providers)
        if not chain or type(chain[-1]) is not MockTranslator:
            chain.append(MockTranslator())
        self._providers = chain
        self.canonical_language = canonical_language

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranslationOrchestrator":
        return cls(
            providers=[
                OpenAITranslator(
                    settings.openai_api_key,
                    model=settings.openai_model,
                    timeout=settings.provider_timeout_seconds,
                    max_retries=settings.provider_max_retries,
                ),
                GoogleTranslateProvider(
                    settings.google_translate_api_key,
                    timeout=settings.provider_timeout_seconds,
                ),
                MockTranslator(),
            ],
            canonical_language=settings.canonical_language,
        )

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    def translate(
        self,
        text: str,
        target_language: str,
        source_language: str | None = "auto",
    ) -> TranslationResult:
        """
        Translate ``text`` into ``target_language``.

        Args:
            text:            Text to translate. Must be non-blank.
            target_language: Target language code (e.g. "ko"). Must be non-blank.
            source_language: Source code or "auto".

        Returns:
            TranslationResult from the first provider that succeeded.

        Raises:
            ValidationError: If text or target_language is missing.
        """
        if not text or not text.strip():
            raise ValidationError("Text and target language are required")
        if not target_language or not target_language.strip():
            raise ValidationError("Text and target language are required")

        target = target_language.strip().lower()
        source = (source_language or "auto").strip().lower() or "auto"

        if target == self.canonical_language and looks_canonical(text):
            logger.debug("Text already in %s, skipping translation", target)
            return TranslationResult(
                translated_text=text,
                source_language=self.canonical_language,
                target_language=target,
                confidence=SKIP_CONFIDENCE,
                provider=SKIP_PROVIDER,
            )

        *fallbacks, terminal = self._providers
        for provider in fallbacks:
            try:
                translated = provider.attempt(text, target, source)
            except ConfigError as exc:
                logger.debug("Provider %s not configured: %s", provider.name, exc)
                continue
            except ProviderError as exc:
                logger.warning(
                    "Provider %s failed for target %s, falling back: %s",
                    provider.name, target, exc,
                )
                continue

            logger.info(
                "Translated %d chars to %s via %s", len(text), target, provider.name,
            )
            return TranslationResult(
                translated_text=translated,
                source_language=source,
                target_language=target,
                confidence=provider.confidence,
                provider=provider.name,
            )

        logger.warning("No provider translated to %s, using %s", target, terminal.name)
        return TranslationResult(
            translated_text=terminal.attempt(text, target, source),
            source_language=source,
            target_language=target,
            confidence=terminal.confidence,
            provider=terminal.name,
        )
