"""
API module.
Contains FastAPI application, routes, and middleware.
"""

from taskqueue.api.main import create_app, run

__all__ = ["create_app", "run"]
