"""Status API layer for Konverge.

Exposes:
    create_app -- FastAPI application factory.
"""

from konverge.api.app import create_app

__all__ = ["create_app"]
