"""
lectern/summary/generators.py
==============================
Summary Generation Providers

Responsibility:
    - Send a fully composed prompt to one text-generation backend
    - Return the generated text, or raise GenerationError

Backends:
    - GeminiGenerator: Google Generative Language REST ``generateContent``
    - OpenAIGenerator: OpenAI chat completions

Exactly one backend is active, chosen by Settings.resolved_summary_provider().
There is no fallback between them. A summary produced by a stub would be
cached as the session's canonical summary, so a failure here must surface.
"""

import logging

import requests
from openai import OpenAI

from lectern.config import Settings
from lectern.errors import GenerationError
from lectern.openai_retry import chat_completions_with_retry

logger = logging.getLogger("lectern.summary.generators")

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_OUTPUT_TOKENS = 800


class SummaryGenerator:
    """Base class for generation backends."""

    name: str = ""

    def generate(
        self,
        prompt: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> str:
        raise NotImplementedError


class GeminiGenerator(SummaryGenerator):
    name = "gemini"

    def __init__(self, api_key: str | None, model: str, timeout: float = 15.0) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    def generate(
        self,
        prompt: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> str:
        if not self._api_key:
            raise GenerationError(self.name, "GEMINI_API_KEY not configured")

        url = f"{GEMINI_API_BASE}/{self._model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }

        try:
            resp = requests.post(
                url,
                params={"key": self._api_key},
                json=body,
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise GenerationError(self.name, f"Gemini request failed: {exc}") from exc

        text = _extract_gemini_text(data)
        if not text:
            logger.error("Gemini response had no text: %s", data)
            raise GenerationError(self.name, "Gemini returned empty output")
        return text


def _extract_gemini_text(data: dict) -> str | None:
    """Pull candidates[0].content.parts[0].text out of a generateContent reply."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text.strip() if isinstance(text, str) and text.strip() else None


class OpenAIGenerator(SummaryGenerator):
    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout: float = 15.0,
        max_retries: int = 1,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._max_retries = max_retries

    def generate(
        self,
        prompt: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> str:
        if not self._api_key:
            raise GenerationError(self.name, "OPENAI_API_KEY not configured")

        client = OpenAI(api_key=self._api_key, timeout=self._timeout, max_retries=0)
        try:
            response = chat_completions_with_retry(
                client,
                max_retries=self._max_retries,
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_output_tokens,
            )
        except Exception as exc:
            raise GenerationError(self.name, f"OpenAI request failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GenerationError(self.name, "OpenAI returned empty output")
        return content.strip()


def build_generator(settings: Settings) -> SummaryGenerator:
    """Instantiate the configured generation backend."""
    provider = settings.resolved_summary_provider()
    logger.info("Summary generation provider: %s", provider)
    if provider == "gemini":
        return GeminiGenerator(
            settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.provider_timeout_seconds,
        )
    return OpenAIGenerator(
        settings.openai_api_key,
        model=settings.openai_model,
        timeout=settings.provider_timeout_seconds,
        max_retries=settings.provider_max_retries,
    )
