"""
lectern/models.py
==================
Domain records shared by the store, the aggregator and the pipelines.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from lectern.categories import Category


class SessionStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


class SummaryState(str, Enum):
    """Per-session summary lifecycle."""

    NO_SUMMARY = "no_summary"
    GENERATING = "generating"
    CACHED = "cached"


@dataclass(frozen=True)
class Session:
    """A presentation session as persisted in the durable store."""

    id: str
    title: str
    host_id: str
    host_name: str
    primary_language: str
    status: SessionStatus
    category: Category
    summary: str | None
    created_at: datetime
    ended_at: datetime | None = None

    @property
    def summary_state(self) -> SummaryState:
        return SummaryState.CACHED if self.summary else SummaryState.NO_SUMMARY

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "hostId": self.host_id,
            "hostName": self.host_name,
            "primaryLanguage": self.primary_language,
            "status": self.status.value,
            "category": self.category.value,
            "hasSummary": bool(self.summary),
            "createdAt": self.created_at.isoformat(),
            "endedAt": self.ended_at.isoformat() if self.ended_at else None,
        }


@dataclass(frozen=True)
class TranscriptSegment:
    """A finalized speech segment. Partial segments are never stored."""

    id: str
    session_id: str
    text: str
    is_final: bool
    created_at: datetime


@dataclass(frozen=True)
class TranslationResult:
    """Outcome of a single translate call; never persisted by the orchestrator."""

    translated_text: str
    source_language: str
    target_language: str
    confidence: float   # 0.0 to 1.0
    provider: str       # "skip" | "primary" | "secondary" | "mock"

    def to_dict(self) -> dict:
        return {
            "translatedText": self.translated_text,
            "sourceLanguage": self.source_language,
            "targetLanguage": self.target_language,
            "confidence": self.confidence,
            "provider": self.provider,
        }


@dataclass(frozen=True)
class SummaryResult:
    summary: str
    category: Category
    transcript_count: int
    from_cache: bool

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "category": self.category.value,
            "transcriptCount": self.transcript_count,
            "fromCache": self.from_cache,
        }


@dataclass(frozen=True)
class SummaryView:
    """Summary retrieval answer for one requested language."""

    summary: str | None
    category: Category
    title: str
    has_summary: bool
    language: str
    from_cache: bool

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "category": self.category.value,
            "title": self.title,
            "hasSummary": self.has_summary,
            "language": self.language,
            "fromCache": self.from_cache,
        }
