"""
Application constants.
Centralized location for the task enumerations and the values tied to them.
"""

from datetime import timedelta
from enum import StrEnum


class TaskType(StrEnum):
    """
    Closed set of task types.

    Member values are the fixed tokens used in the database and on the wire.
    """

    FIZZ = "fizz"
    BUZZ = "buzz"
    FIZZBUZZ = "fizzbuzz"

    @classmethod
    def parse(cls, token: str) -> "TaskType | None":
        """Parse a wire token, returning None for unknown tokens."""
        try:
            return cls(token.strip())
        except ValueError:
            return None

    @property
    def label(self) -> str:
        """Human readable label used in task output."""
        return TASK_TYPE_LABELS[self]

    @property
    def delay(self) -> timedelta:
        """Minimum age before a task of this type may run."""
        return TASK_TYPE_DELAYS[self]


class TaskState(StrEnum):
    """
    Task lifecycle states.

    State transitions:
    - INCOMPLETE -> COMPLETE (claimed, executed and committed by a worker)
    - INCOMPLETE -> DELETED (soft delete through the API)

    COMPLETE and DELETED are terminal.
    """

    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
    DELETED = "deleted"

    @classmethod
    def parse(cls, token: str) -> "TaskState | None":
        """Parse a wire token, returning None for unknown tokens."""
        try:
            return cls(token.strip())
        except ValueError:
            return None


TASK_TYPE_LABELS: dict[TaskType, str] = {
    TaskType.FIZZ: "Fizz",
    TaskType.BUZZ: "Buzz",
    TaskType.FIZZBUZZ: "Fizz Buzz",
}

TASK_TYPE_DELAYS: dict[TaskType, timedelta] = {
    TaskType.FIZZ: timedelta(seconds=3),
    TaskType.BUZZ: timedelta(seconds=5),
    TaskType.FIZZBUZZ: timedelta(seconds=0),
}

# Deleted tasks are only listed when asked for explicitly
DEFAULT_LIST_TYPES: tuple[TaskType, ...] = tuple(TaskType)
DEFAULT_LIST_STATES: tuple[TaskState, ...] = (TaskState.INCOMPLETE, TaskState.COMPLETE)

# Default values
DEFAULT_BATCH_SIZE = 5

# API constants
TASKS_PREFIX = "/tasks"

# Metrics names
METRIC_QUEUE_DEPTH = "task_queue_depth"
METRIC_TASKS_SUBMITTED = "tasks_submitted_total"
METRIC_TASKS_CLAIMED = "tasks_claimed_total"
METRIC_TASKS_COMPLETED = "tasks_completed_total"
METRIC_TASKS_DELETED = "tasks_deleted_total"
METRIC_CLAIM_FAILURES = "claim_iteration_failures_total"
METRIC_CLAIM_DURATION = "claim_iteration_duration_seconds"
METRIC_API_REQUESTS = "api_requests_total"
METRIC_API_LATENCY = "api_request_latency_seconds"

# Trace span names
SPAN_SUBMIT_TASK = "submit_task"
SPAN_CLAIM_BATCH = "claim_batch"
SPAN_EXECUTE_TASK = "execute_task"
