# lectern/__init__.py
# ====================
# Lectern: live session transcripts, multi-provider translation and
# categorized session summaries.
#
# Layers:
#   lectern.store        durable sessions, segments and summary cache (SQLite)
#   lectern.transcript   in-memory per-session transcript aggregator
#   lectern.translation  provider chain with deterministic fallback
#   lectern.summary      canonical summary generation + per-language fan-out
#   lectern.api          FastAPI surface

__version__ = "1.0.0"
