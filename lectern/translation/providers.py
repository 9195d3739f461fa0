"""
lectern/translation/providers.py
=================================
Translation Provider Strategies

Every provider exposes the same capability::

    attempt(text, target_language, source_language) -> str

and either returns non-empty translated text or raises:

    ConfigError   - its credential is absent (skip without calling out)
    ProviderError - network failure, timeout, non-2xx or empty output

Providers, in the order the orchestrator tries them:
    1. OpenAITranslator        (primary, generative, confidence 0.9)
    2. GoogleTranslateProvider (secondary, dedicated API, confidence 0.8)
    3. MockTranslator          (terminal, deterministic, confidence 0.1)

MockTranslator never raises, which is what lets the orchestrator promise a
result for every call.
"""

import logging

import requests
from openai import OpenAI

from lectern.errors import ConfigError, ProviderError
from lectern.openai_retry import chat_completions_with_retry

logger = logging.getLogger("lectern.translation.providers")


LANGUAGE_NAMES: dict[str, str] = {
    "ko": "Korean",
    "ja": "Japanese",
    "zh": "Chinese",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ar": "Arabic",
    "hi": "Hindi",
    "en": "English",
}

GOOGLE_TRANSLATE_ENDPOINT = "https://translation.googleapis.com/language/translate/v2"

_SYSTEM_PROMPT: str = (
    "You are a professional translator. Provide natural, accurate "
    "translations without explanations."
)


def language_name(code: str) -> str:
    """Human-readable language name, or the code itself when unknown."""
    return LANGUAGE_NAMES.get(code.lower(), code)


class TranslationProvider:
    """Base strategy. Subclasses set ``name`` and ``confidence``."""

    name: str = ""
    confidence: float = 0.0

    def attempt(self, text: str, target_language: str, source_language: str = "auto") -> str:
        raise NotImplementedError


class OpenAITranslator(TranslationProvider):
    """Primary provider: OpenAI chat completions."""

    name = "primary"
    confidence = 0.9

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        timeout: float = 15.0,
        max_retries: int = 1,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            # SDK-level retries off; chat_completions_with_retry owns them
            self._client = OpenAI(
                api_key=self._api_key, timeout=self._timeout, max_retries=0,
            )
        return self._client

    def attempt(self, text: str, target_language: str, source_language: str = "auto") -> str:
        if not self._api_key:
            raise ConfigError("OPENAI_API_KEY not set")

        prompt = (
            f"Translate the following text to {language_name(target_language)}. "
            "Only return the translation, no explanations:\n\n"
            f"{text}"
        )

        try:
            response = chat_completions_with_retry(
                self._get_client(),
                max_retries=self._max_retries,
                model=self._model,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.3,
                max_tokens=max(256, len(text) * 2),
            )
        except Exception as exc:
            raise ProviderError(self.name, f"OpenAI request failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise ProviderError(self.name, "OpenAI returned empty translation")
        return content.strip()


class GoogleTranslateProvider(TranslationProvider):
    """Secondary provider: Google Cloud Translation v2 REST."""

    name = "secondary"
    confidence = 0.8

    def __init__(self, api_key: str | None, timeout: float = 15.0) -> None:
        self._api_key = api_key
        self._timeout = timeout

    def attempt(self, text: str, target_language: str, source_language: str = "auto") -> str:
        if not self._api_key:
            raise ConfigError("GOOGLE_TRANSLATE_API_KEY not set")

        payload = {"q": text, "target": target_language, "format": "text"}
        if source_language and source_language != "auto":
            payload["source"] = source_language

        try:
            resp = requests.post(
                GOOGLE_TRANSLATE_ENDPOINT,
                params={"key": self._api_key},
                json=payload,
                timeout=self._timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise ProviderError(self.name, f"Google Translate request failed: {exc}") from exc

        try:
            translated = body["data"]["translations"][0]["translatedText"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError(self.name, f"Unexpected Google Translate response: {body!r}") from exc

        if not translated or not str(translated).strip():
            raise ProviderError(self.name, "Google Translate returned empty text")
        return str(translated).strip()


class MockTranslator(TranslationProvider):
    """Terminal provider. Tags the text with the target code; never fails."""

    name = "mock"
    confidence = 0.1

    def attempt(self, text: str, target_language: str, source_language: str = "auto") -> str:
        return f"[{target_language.upper()}] {text}"
