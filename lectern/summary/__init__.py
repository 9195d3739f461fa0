# lectern/summary/__init__.py
# ============================
# Session Summary Layer
#
# Public API:
#   SummaryPipeline.generate(session_id, force=False) -> SummaryResult
#   SummaryPipeline.get_summary(session_id, language)  -> SummaryView
#   build_generator(settings)                          -> SummaryGenerator

from lectern.summary.generators import (  # noqa: F401
    GeminiGenerator,
    OpenAIGenerator,
    SummaryGenerator,
    build_generator,
)
from lectern.summary.pipeline import SummaryPipeline  # noqa: F401

__all__ = [
    "GeminiGenerator",
    "OpenAIGenerator",
    "SummaryGenerator",
    "SummaryPipeline",
    "build_generator",
]
