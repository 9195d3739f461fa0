"""
tests/test_config.py
=====================
Settings loading from the environment.
"""

import os
import sys
import unittest
from unittest.mock import patch

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from lectern.categories import Category
from lectern.config import Settings


class TestSettings(unittest.TestCase):

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        settings = Settings.from_env()
        self.assertEqual(settings.canonical_language, "en")
        self.assertEqual(settings.summary_languages, ("ko", "zh", "hi"))
        self.assertEqual(settings.max_transcript_chars, 8000)
        self.assertEqual(settings.session_idle_seconds, 3600)
        self.assertFalse(settings.summary_on_end)
        self.assertIsNone(settings.openai_api_key)
        self.assertEqual(settings.resolved_summary_provider(), "openai")

    @patch.dict(os.environ, {
        "SUMMARY_LANGUAGES": " JA, en ,,fr ",
        "MAX_TRANSCRIPT_CHARS": "1200",
        "PROVIDER_TIMEOUT_SECONDS": "2.5",
        "SUMMARY_ON_END": "yes",
        "GEMINI_API_KEY": "g-key",
        "OPENAI_API_KEY": "  ",
    }, clear=True)
    def test_overrides(self):
        settings = Settings.from_env()
        self.assertEqual(settings.summary_languages, ("ja", "en", "fr"))
        self.assertEqual(settings.target_languages, ("ja", "fr"))
        self.assertEqual(settings.max_transcript_chars, 1200)
        self.assertEqual(settings.provider_timeout_seconds, 2.5)
        self.assertTrue(settings.summary_on_end)
        self.assertIsNone(settings.openai_api_key)
        self.assertEqual(settings.resolved_summary_provider(), "gemini")

    @patch.dict(os.environ, {"MAX_TRANSCRIPT_CHARS": "lots"}, clear=True)
    def test_invalid_number_keeps_default(self):
        self.assertEqual(Settings.from_env().max_transcript_chars, 8000)

    @patch.dict(os.environ, {"SUMMARY_PROVIDER": "Claude", "GEMINI_API_KEY": "g"}, clear=True)
    def test_unknown_summary_provider_chooses_automatically(self):
        self.assertEqual(Settings.from_env().resolved_summary_provider(), "gemini")


class TestCategory(unittest.TestCase):

    def test_normalize(self):
        self.assertIs(Category.normalize("Technology "), Category.TECHNOLOGY)
        self.assertIs(Category.normalize(None), Category.GENERAL)
        self.assertIs(Category.normalize("cooking"), Category.GENERAL)
        self.assertIs(Category.normalize(Category.LEGAL), Category.LEGAL)

    def test_every_category_has_prompt(self):
        for category in Category:
            self.assertTrue(category.prompt)


if __name__ == "__main__":
    unittest.main(verbosity=2)
