"""
API request and response type definitions.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from taskqueue.constants import (
    DEFAULT_LIST_STATES,
    DEFAULT_LIST_TYPES,
    TaskState,
    TaskType,
)


class CreateTaskRequest(BaseModel):
    """Request body for creating a new task."""

    task_type: TaskType = Field(..., description="One of fizz, buzz, fizzbuzz")


class TaskResponse(BaseModel):
    """Task details response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    task_type: TaskType
    submitted: datetime
    state: TaskState


class TaskFilter(BaseModel):
    """
    Comma separated filters for listing tasks.

    Unknown tokens are dropped. A filter that is absent, or has no valid
    token left, falls back to its default: every type, and the incomplete and
    complete states.
    """

    types: str | None = None
    states: str | None = None

    @staticmethod
    def _split(raw: str | None) -> list[str]:
        if raw is None:
            return []
        return [token for token in raw.split(",") if token]

    def resolved_types(self) -> list[TaskType]:
        """Get the task types to list."""
        parsed = [TaskType.parse(token) for token in self._split(self.types)]
        types = [t for t in parsed if t is not None]
        return types or list(DEFAULT_LIST_TYPES)

    def resolved_states(self) -> list[TaskState]:
        """Get the task states to list."""
        parsed = [TaskState.parse(token) for token in self._split(self.states)]
        states = [s for s in parsed if s is not None]
        return states or list(DEFAULT_LIST_STATES)


class TaskStatsResponse(BaseModel):
    """Task counts by state."""

    stats: dict[str, int]
    queue_depth: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    message: str
