# lectern/transcript/__init__.py
# ===============================
# Live Transcript Layer
#
# Public API:
#   TranscriptAggregator: per-session in-memory buffer mirrored to the store

from lectern.transcript.aggregator import (  # noqa: F401
    AggregatorState,
    BufferSnapshot,
    TranscriptAggregator,
)

__all__ = ["AggregatorState", "BufferSnapshot", "TranscriptAggregator"]
