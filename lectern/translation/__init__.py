# lectern/translation/__init__.py
# ================================
# Translation Layer
#
# Public API:
#   TranslationOrchestrator.translate(text, target, source="auto")
#       -> TranslationResult   (never raises for provider failures)

from lectern.translation.orchestrator import (  # noqa: F401
    TranslationOrchestrator,
    looks_canonical,
)
from lectern.translation.providers import (  # noqa: F401
    GoogleTranslateProvider,
    MockTranslator,
    OpenAITranslator,
    TranslationProvider,
)

__all__ = [
    "GoogleTranslateProvider",
    "MockTranslator",
    "OpenAITranslator",
    "TranslationOrchestrator",
    "TranslationProvider",
    "looks_canonical",
]
