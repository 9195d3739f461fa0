"""
tests/test_summary.py
======================
Session Summary Pipeline Tests

Test categories:
    1. Canonical generation (caching, force, failures, prompt assembly)
    2. Per-language fan-out, generator translation fallback, retrieval
    3. Single flight (shared results, shared errors, forced re-runs)
    4. Generation backends (Gemini REST, OpenAI, selection)

Generators and translation providers are stubbed. No network access.
"""

import os
import sys
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

import requests

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from lectern.categories import Category
from lectern.config import Settings
from lectern.errors import GenerationError, NoTranscriptError, SessionNotFoundError
from lectern.errors import ProviderError
from lectern.models import SummaryState
from lectern.store import Database, SQLiteCacheStore, TranscriptStore
from lectern.summary import (
    GeminiGenerator,
    OpenAIGenerator,
    SummaryGenerator,
    SummaryPipeline,
    build_generator,
)
from lectern.services import build_services
from lectern.summary.prompts import (
    build_summary_prompt,
    build_translation_prompt,
    truncate_transcript,
)
from lectern.transcript import TranscriptAggregator
from lectern.translation import MockTranslator, TranslationOrchestrator, TranslationProvider


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


CANONICAL_SUMMARY = "<b>Chip</b><br/>- 3nm process<br/>- 40% battery"
TRANSLATION_PREFIX = "Translate the following"


class _FakeGenerator(SummaryGenerator):
    name = "fake"

    def __init__(self, text=CANONICAL_SUMMARY, error=None):
        self.text = text
        self.error = error
        self.translate_error = None
        self.prompts = []
        self.temperatures = []

    @property
    def summary_prompts(self):
        return [p for p in self.prompts if not p.startswith(TRANSLATION_PREFIX)]

    def generate(self, prompt, temperature=0.3, max_output_tokens=800):
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        if prompt.startswith(TRANSLATION_PREFIX):
            if self.translate_error is not None:
                raise self.translate_error
            return f"[generated] {self.text}"
        if self.error is not None:
            raise self.error
        return self.text


class _TaggingProvider(TranslationProvider):
    """Prefixes the text with the target code, failing for chosen targets."""

    name = "primary"
    confidence = 0.9

    def __init__(self, failing=()):
        self.failing = set(failing)

    def attempt(self, text, target_language, source_language="auto"):
        if target_language in self.failing:
            raise ProviderError(self.name, "unsupported")
        return f"<{target_language}>{text}"


class _PipelineTestCase(unittest.TestCase):

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        database = Database(os.path.join(tmp.name, "lectern.db"))
        self.store = TranscriptStore(database)
        self.cache = SQLiteCacheStore(database)
        self.aggregator = TranscriptAggregator(self.store)
        self.generator = _FakeGenerator()
        self.provider = _TaggingProvider()

    def _pipeline(self, **overrides):
        params = {
            "store": self.store,
            "cache": self.cache,
            "generator": self.generator,
            "translator": TranslationOrchestrator([self.provider]),
            "wait_timeout": 5.0,
        }
        params.update(overrides)
        return SummaryPipeline(**params)

    def _session_with_segments(self, *texts, category="technology", session_id="S1"):
        session = self.store.create_session(
            title="Chip launch", host_id="h", host_name="Host",
            category=category, session_id=session_id,
        )
        self.aggregator.start_session(session.id)
        for text in texts:
            self.aggregator.append_segment(session.id, text, True)
        return session.id


# ===================================================================
# 1. CANONICAL GENERATION
# ===================================================================


class TestGenerate(_PipelineTestCase):

    def test_technology_session_end_to_end(self):
        sid = self._session_with_segments(
            "The new chip uses 3nm process.",
            "It improves battery life by 40 percent.",
        )
        self.assertEqual(
            self.aggregator.get_buffer(sid).transcript,
            "The new chip uses 3nm process. It improves battery life by 40 percent. ",
        )
        pipeline = self._pipeline()

        first = pipeline.generate(sid)
        self.assertEqual(first.summary, CANONICAL_SUMMARY)
        self.assertEqual(first.category, Category.TECHNOLOGY)
        self.assertEqual(first.transcript_count, 2)
        self.assertFalse(first.from_cache)

        second = pipeline.generate(sid)
        self.assertEqual(second.summary, first.summary)
        self.assertTrue(second.from_cache)
        self.assertEqual(len(self.generator.prompts), 1)

    def test_force_regenerates(self):
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline()
        pipeline.generate(sid)
        self.generator.text = "updated summary"
        result = pipeline.generate(sid, force=True)
        self.assertFalse(result.from_cache)
        self.assertEqual(result.summary, "updated summary")
        self.assertEqual(self.store.get_session(sid).summary, "updated summary")
        self.assertEqual(len(self.generator.prompts), 2)

    def test_unknown_session(self):
        with self.assertRaises(SessionNotFoundError):
            self._pipeline().generate("ghost")

    def test_no_transcripts(self):
        sid = self._session_with_segments()
        with self.assertRaises(NoTranscriptError):
            self._pipeline().generate(sid)
        self.assertEqual(self.generator.prompts, [])

    def test_partial_segments_do_not_count(self):
        sid = self._session_with_segments()
        self.aggregator.append_segment(sid, "interim only", False)
        with self.assertRaises(NoTranscriptError):
            self._pipeline().generate(sid)

    def test_generation_failure_writes_nothing(self):
        sid = self._session_with_segments("Hello everyone.")
        self.generator.error = GenerationError("fake", "quota exceeded")
        pipeline = self._pipeline()
        with self.assertRaises(GenerationError):
            pipeline.generate(sid)
        self.assertIsNone(self.store.get_session(sid).summary)
        self.assertIsNone(self.cache.get(sid, "en"))
        self.assertIsNone(self.cache.get(sid, "ko"))
        self.assertEqual(pipeline.summary_state(sid), SummaryState.NO_SUMMARY)

    def test_empty_generation_is_failure(self):
        sid = self._session_with_segments("Hello everyone.")
        self.generator.text = "   "
        with self.assertRaises(GenerationError):
            self._pipeline().generate(sid)

    def test_summary_state_after_generation(self):
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline()
        self.assertEqual(pipeline.summary_state(sid), SummaryState.NO_SUMMARY)
        pipeline.generate(sid)
        self.assertEqual(pipeline.summary_state(sid), SummaryState.CACHED)

    def test_prompt_uses_category_and_transcript(self):
        sid = self._session_with_segments("first part", "second part", category="medical")
        self._pipeline().generate(sid)
        prompt = self.generator.prompts[0]
        self.assertIn(Category.MEDICAL.prompt, prompt)
        self.assertIn("first part second part", prompt)

    def test_unknown_category_uses_general_prompt(self):
        sid = self._session_with_segments("hello", category="cooking")
        result = self._pipeline().generate(sid)
        self.assertEqual(result.category, Category.GENERAL)
        self.assertIn(Category.GENERAL.prompt, self.generator.prompts[0])

    def test_long_transcript_truncated(self):
        sid = self._session_with_segments("a" * 30, "b" * 30)
        self._pipeline(max_transcript_chars=40).generate(sid)
        expected = "a" * 30 + " " + "b" * 9 + "..."
        self.assertIn(expected, self.generator.prompts[0])
        self.assertNotIn("b" * 10, self.generator.prompts[0])

    def test_truncate_transcript(self):
        self.assertEqual(truncate_transcript("short", 10), "short")
        self.assertEqual(truncate_transcript("x" * 12, 10), "x" * 10 + "...")

    def test_build_summary_prompt_requests_tags(self):
        prompt = build_summary_prompt(Category.SPORTS, "the match")
        self.assertIn(Category.SPORTS.prompt, prompt)
        self.assertIn("the match", prompt)
        self.assertIn("<b>Important tags</b>", prompt)


# ===================================================================
# 2. FAN-OUT AND RETRIEVAL
# ===================================================================


class TestFanOut(_PipelineTestCase):

    def test_every_target_language_cached(self):
        sid = self._session_with_segments("Hello everyone.")
        self._pipeline().generate(sid)
        self.assertEqual(self.cache.get(sid, "en"), CANONICAL_SUMMARY)
        for lang in ("ko", "zh", "hi"):
            self.assertEqual(self.cache.get(sid, lang), f"<{lang}>{CANONICAL_SUMMARY}")

    def test_canonical_language_not_in_targets(self):
        pipeline = self._pipeline(target_languages=("en", "ko"))
        self.assertEqual(pipeline.target_languages, ("ko",))

    def test_failed_language_translated_by_generator(self):
        self.provider.failing = {"zh"}
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline()
        pipeline.generate(sid)

        self.assertEqual(self.cache.get(sid, "zh"), f"[generated] {CANONICAL_SUMMARY}")
        self.assertEqual(self.cache.get(sid, "ko"), f"<ko>{CANONICAL_SUMMARY}")
        self.assertEqual(len(self.generator.summary_prompts), 1)
        self.assertEqual(len(self.generator.prompts), 2)
        self.assertIn("Chinese", self.generator.prompts[1])

    def test_failed_language_falls_back_to_canonical(self):
        self.provider.failing = {"zh"}
        self.generator.translate_error = GenerationError("fake", "quota exceeded")
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline()
        pipeline.generate(sid)

        self.assertIsNone(self.cache.get(sid, "zh"))
        self.assertIsNotNone(self.cache.get(sid, "ko"))

        view = pipeline.get_summary(sid, "zh")
        self.assertEqual(view.summary, CANONICAL_SUMMARY)
        self.assertFalse(view.from_cache)
        self.assertEqual(view.language, "zh")

    def test_mock_only_chain_translates_with_generator(self):
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline(translator=TranslationOrchestrator([MockTranslator()]))
        pipeline.generate(sid)

        for lang in ("ko", "zh", "hi"):
            cached = self.cache.get(sid, lang)
            self.assertEqual(cached, f"[generated] {CANONICAL_SUMMARY}")
            self.assertFalse(cached.startswith(f"[{lang.upper()}]"))

        self.assertEqual(
            self.generator.prompts[1],
            build_translation_prompt(CANONICAL_SUMMARY, "ko", "en"),
        )
        self.assertIn("Korean", self.generator.prompts[1])
        self.assertEqual(self.generator.temperatures[1:], [0.1, 0.1, 0.1])

        view = pipeline.get_summary(sid, "ko")
        self.assertTrue(view.from_cache)
        self.assertEqual(view.summary, f"[generated] {CANONICAL_SUMMARY}")

    def test_empty_generator_translation_not_cached(self):
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline(translator=TranslationOrchestrator([MockTranslator()]))
        original = self.generator.generate

        def blank_translation(prompt, temperature=0.3, max_output_tokens=800):
            text = original(prompt, temperature, max_output_tokens)
            return "   " if prompt.startswith(TRANSLATION_PREFIX) else text

        self.generator.generate = blank_translation
        pipeline.generate(sid)
        self.assertIsNone(self.cache.get(sid, "ko"))
        self.assertFalse(pipeline.get_summary(sid, "ko").from_cache)

    @patch("lectern.summary.generators.requests.post")
    def test_gemini_only_deployment_caches_translations(self, mock_post):
        resp = MagicMock()
        resp.raise_for_status.return_value = None
        resp.json.return_value = {
            "candidates": [{"content": {"parts": [{"text": "번역된 요약"}]}}],
        }
        mock_post.return_value = resp

        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        services = build_services(
            Settings(db_path=os.path.join(tmp.name, "gemini.db"), gemini_api_key="g-test")
        )
        session = services.store.create_session(
            title="Launch", host_id="h", host_name="Host", category="technology",
        )
        services.aggregator.start_session(session.id)
        services.aggregator.append_segment(session.id, "The new chip uses 3nm process.", True)

        services.summaries.generate(session.id)

        view = services.summaries.get_summary(session.id, "ko")
        self.assertTrue(view.from_cache)
        self.assertEqual(view.summary, "번역된 요약")
        # one summary call plus one translation per target language
        self.assertEqual(mock_post.call_count, 4)

    def test_translator_crash_does_not_fail_generation(self):
        sid = self._session_with_segments("Hello everyone.")
        translator = MagicMock()
        translator.translate.side_effect = RuntimeError("boom")
        result = self._pipeline(translator=translator).generate(sid)
        self.assertEqual(result.summary, CANONICAL_SUMMARY)
        self.assertEqual(translator.translate.call_count, 3)

    def test_get_summary_cached_language(self):
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline()
        pipeline.generate(sid)
        view = pipeline.get_summary(sid, "KO")
        self.assertEqual(view.summary, f"<ko>{CANONICAL_SUMMARY}")
        self.assertTrue(view.from_cache)
        self.assertTrue(view.has_summary)
        self.assertEqual(view.title, "Chip launch")
        self.assertEqual(view.category, Category.TECHNOLOGY)

    def test_get_summary_canonical_language(self):
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline()
        pipeline.generate(sid)
        for lang in (None, "en"):
            view = pipeline.get_summary(sid, lang)
            self.assertEqual(view.summary, CANONICAL_SUMMARY)
            self.assertFalse(view.from_cache)
            self.assertEqual(view.language, "en")

    def test_get_summary_before_generation(self):
        sid = self._session_with_segments("Hello everyone.")
        view = self._pipeline().get_summary(sid, "ko")
        self.assertIsNone(view.summary)
        self.assertFalse(view.has_summary)
        self.assertFalse(view.from_cache)

    def test_get_summary_unknown_session(self):
        with self.assertRaises(SessionNotFoundError):
            self._pipeline().get_summary("ghost", "ko")

    def test_force_refreshes_cached_translations(self):
        sid = self._session_with_segments("Hello everyone.")
        pipeline = self._pipeline()
        pipeline.generate(sid)
        self.generator.text = "v2"
        pipeline.generate(sid, force=True)
        self.assertEqual(self.cache.get(sid, "ko"), "<ko>v2")


# ===================================================================
# 3. SINGLE FLIGHT
# ===================================================================


class _SlowGenerator(SummaryGenerator):
    """Blocks every call until released, then answers or raises."""

    name = "slow"

    def __init__(self, error=None):
        self.started = threading.Event()
        self.release = threading.Event()
        self.error = error
        self.calls = []

    def generate(self, prompt, temperature=0.3, max_output_tokens=800):
        self.calls.append(prompt)
        self.started.set()
        self.release.wait(5)
        if self.error is not None:
            raise self.error
        return f"summary {len(self.calls)}"


class TestSingleFlight(_PipelineTestCase):

    def _watch_waiters(self, pipeline):
        """Set the returned event once a caller starts waiting on a running flight."""
        waiting = threading.Event()
        original = pipeline._wait_for_flight

        def wait_for_flight(session_id, flight):
            waiting.set()
            return original(session_id, flight)

        pipeline._wait_for_flight = wait_for_flight
        return waiting

    def _race(self, pipeline, sid, generator, second_force=False):
        """Run two generate() calls, the second only once the first is in flight."""
        results, errors = {}, {}
        waiting = self._watch_waiters(pipeline)

        def run(key, force):
            try:
                results[key] = pipeline.generate(sid, force=force)
            except Exception as exc:
                errors[key] = exc

        first = threading.Thread(target=run, args=("first", False))
        first.start()
        self.assertTrue(generator.started.wait(5))
        self.assertEqual(pipeline.summary_state(sid), SummaryState.GENERATING)

        second = threading.Thread(target=run, args=("second", second_force))
        second.start()
        self.assertTrue(waiting.wait(5))
        self.assertEqual(len(generator.calls), 1)

        generator.release.set()
        first.join(5)
        second.join(5)
        self.assertFalse(first.is_alive())
        self.assertFalse(second.is_alive())
        return results, errors

    def test_concurrent_requests_share_one_generation(self):
        sid = self._session_with_segments("Hello everyone.")
        generator = _SlowGenerator()
        pipeline = self._pipeline(generator=generator)

        results, errors = self._race(pipeline, sid, generator)

        self.assertEqual(errors, {})
        self.assertEqual(len(generator.calls), 1)
        self.assertEqual(results["first"].summary, "summary 1")
        self.assertFalse(results["first"].from_cache)
        self.assertEqual(results["second"].summary, "summary 1")
        self.assertTrue(results["second"].from_cache)
        self.assertEqual(pipeline.summary_state(sid), SummaryState.CACHED)

    def test_waiter_receives_owner_error(self):
        sid = self._session_with_segments("Hello everyone.")
        generator = _SlowGenerator(error=GenerationError("slow", "quota exceeded"))
        pipeline = self._pipeline(generator=generator)

        results, errors = self._race(pipeline, sid, generator)

        self.assertEqual(results, {})
        self.assertIsInstance(errors["first"], GenerationError)
        self.assertIs(errors["second"], errors["first"])
        self.assertEqual(len(generator.calls), 1)
        self.assertEqual(pipeline.summary_state(sid), SummaryState.NO_SUMMARY)

    def test_forced_request_runs_after_inflight_generation(self):
        sid = self._session_with_segments("Hello everyone.")
        generator = _SlowGenerator()
        pipeline = self._pipeline(generator=generator)

        results, errors = self._race(pipeline, sid, generator, second_force=True)

        self.assertEqual(errors, {})
        self.assertEqual(len(generator.calls), 2)
        self.assertEqual(results["first"].summary, "summary 1")
        self.assertEqual(results["second"].summary, "summary 2")
        self.assertFalse(results["second"].from_cache)
        self.assertEqual(self.store.get_session(sid).summary, "summary 2")
        self.assertEqual(self.cache.get(sid, "ko"), "<ko>summary 2")

    def test_wait_times_out(self):
        sid = self._session_with_segments("Hello everyone.")
        generator = _SlowGenerator()
        pipeline = self._pipeline(generator=generator, wait_timeout=0.05)
        first = threading.Thread(target=pipeline.generate, args=(sid,))
        first.start()
        self.assertTrue(generator.started.wait(5))
        try:
            with self.assertRaises(GenerationError):
                pipeline.generate(sid)
        finally:
            generator.release.set()
            first.join(5)

    def test_sessions_generate_independently(self):
        a = self._session_with_segments("alpha", session_id="A")
        b = self._session_with_segments("beta", session_id="B")
        pipeline = self._pipeline()
        pipeline.generate(a)
        pipeline.generate(b)
        self.assertEqual(len(self.generator.prompts), 2)


# ===================================================================
# 4. GENERATION BACKENDS
# ===================================================================


class TestGenerators(unittest.TestCase):

    @patch("lectern.summary.generators.requests.post")
    def test_gemini_success(self, mock_post):
        resp = MagicMock()
        resp.raise_for_status.return_value = None
        resp.json.return_value = {
            "candidates": [{"content": {"parts": [{"text": "  summary text  "}]}}],
        }
        mock_post.return_value = resp

        text = GeminiGenerator("g-key", model="gemini-1.5-flash", timeout=7).generate("prompt")
        self.assertEqual(text, "summary text")
        args, kwargs = mock_post.call_args
        self.assertTrue(args[0].endswith("/gemini-1.5-flash:generateContent"))
        self.assertEqual(kwargs["params"], {"key": "g-key"})
        self.assertEqual(kwargs["json"]["contents"][0]["parts"][0]["text"], "prompt")
        self.assertEqual(kwargs["json"]["generationConfig"]["maxOutputTokens"], 800)
        self.assertEqual(kwargs["timeout"], 7)

    @patch("lectern.summary.generators.requests.post")
    def test_gemini_empty_candidates(self, mock_post):
        resp = MagicMock()
        resp.raise_for_status.return_value = None
        resp.json.return_value = {"candidates": []}
        mock_post.return_value = resp
        with self.assertRaises(GenerationError):
            GeminiGenerator("g-key", model="m").generate("prompt")

    @patch("lectern.summary.generators.requests.post")
    def test_gemini_http_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(GenerationError) as ctx:
            GeminiGenerator("g-key", model="m").generate("prompt")
        self.assertEqual(ctx.exception.provider, "gemini")

    def test_gemini_without_key(self):
        with self.assertRaises(GenerationError):
            GeminiGenerator(None, model="m").generate("prompt")

    @patch("lectern.summary.generators.OpenAI")
    @patch("lectern.summary.generators.chat_completions_with_retry")
    def test_openai_success(self, mock_chat, mock_openai):
        message = MagicMock()
        message.content = "openai summary"
        choice = MagicMock()
        choice.message = message
        mock_chat.return_value = MagicMock(choices=[choice])
        text = OpenAIGenerator("sk", model="gpt-4o-mini").generate("prompt")
        self.assertEqual(text, "openai summary")
        self.assertEqual(mock_chat.call_args.kwargs["max_tokens"], 800)

    @patch("lectern.summary.generators.OpenAI")
    @patch("lectern.summary.generators.chat_completions_with_retry")
    def test_openai_failure(self, mock_chat, mock_openai):
        mock_chat.side_effect = RuntimeError("server error")
        with self.assertRaises(GenerationError):
            OpenAIGenerator("sk", model="gpt-4o-mini").generate("prompt")

    def test_build_generator_prefers_gemini(self):
        generator = build_generator(Settings(gemini_api_key="g", openai_api_key="o"))
        self.assertIsInstance(generator, GeminiGenerator)

    def test_build_generator_explicit_openai(self):
        generator = build_generator(
            Settings(gemini_api_key="g", openai_api_key="o", summary_provider="openai"),
        )
        self.assertIsInstance(generator, OpenAIGenerator)

    def test_build_generator_without_keys(self):
        self.assertIsInstance(build_generator(Settings()), OpenAIGenerator)


if __name__ == "__main__":
    unittest.main(verbosity=2)
