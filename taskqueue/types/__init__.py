"""
Type definitions for the task queue.
Contains input/output type definitions grouped by module.
"""

from taskqueue.types.api import (
    CreateTaskRequest,
    ErrorResponse,
    HealthResponse,
    TaskFilter,
    TaskResponse,
    TaskStatsResponse,
)
from taskqueue.types.task import ClaimResult

__all__ = [
    # API types
    "CreateTaskRequest",
    "TaskResponse",
    "TaskFilter",
    "TaskStatsResponse",
    "HealthResponse",
    "ErrorResponse",
    # Task types
    "ClaimResult",
]
