"""
API routes module.
"""

from taskqueue.api.routes.health import router as health_router
from taskqueue.api.routes.tasks import router as tasks_router

__all__ = ["tasks_router", "health_router"]
