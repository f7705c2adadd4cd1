"""REST API layer for meshscope.

Exposes:
    create_app -- FastAPI application factory.
"""

from meshscope.api.app import create_app

__all__ = ["create_app"]
