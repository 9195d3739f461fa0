"""
lectern/services.py
====================
Service container: builds every collaborator once from Settings so the API
layer and tests share one wiring path.
"""

import logging
from dataclasses import dataclass

from lectern.config import Settings
from lectern.store import Database, SQLiteCacheStore, TranscriptStore, TranslationCache
from lectern.summary import SummaryPipeline, build_generator
from lectern.transcript import TranscriptAggregator
from lectern.translation import TranslationOrchestrator

logger = logging.getLogger("lectern.services")


@dataclass
class Services:
    settings: Settings
    store: TranscriptStore
    cache: SQLiteCacheStore
    aggregator: TranscriptAggregator
    translator: TranslationOrchestrator
    summaries: SummaryPipeline
    translation_cache: TranslationCache


def build_services(settings: Settings) -> Services:
    database = Database(settings.db_path)
    store = TranscriptStore(database)
    cache = SQLiteCacheStore(database)
    translator = TranslationOrchestrator.from_settings(settings)
    summaries = SummaryPipeline.from_settings(
        settings,
        store=store,
        cache=cache,
        generator=build_generator(settings),
        translator=translator,
    )

    logger.info(
        "Services ready: db=%s, canonical=%s, summary languages=%s, "
        "openai=%s, google_translate=%s",
        settings.db_path,
        settings.canonical_language,
        ",".join(settings.target_languages) or "-",
        "configured" if settings.openai_api_key else "missing",
        "configured" if settings.google_translate_api_key else "missing",
    )

    return Services(
        settings=settings,
        store=store,
        cache=cache,
        aggregator=TranscriptAggregator(store),
        translator=translator,
        summaries=summaries,
        translation_cache=TranslationCache(database),
    )
