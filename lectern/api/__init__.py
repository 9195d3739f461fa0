# lectern/api/__init__.py
# ========================
# API Layer
#
#   - FastAPI application factory: create_app(services=None, settings=None)
#   - Structured success/error envelope on every response

from lectern.api.server import create_app  # noqa: F401

__all__ = ["create_app"]
