"""
Task handlers registry and implementations.

A handler formats the output line for one task type. Handlers are pure: the
single side effect, emitting the line, happens in `execute_task` and only
after the eligibility check passes.
"""

import logging
from datetime import UTC, datetime
from typing import Callable
from uuid import UUID

from taskqueue.constants import TaskType
from taskqueue.db.models import Task

logger = logging.getLogger(__name__)

# Type alias for task handler functions
TaskHandler = Callable[[Task, datetime], str]

# Type alias for the output sink
Emitter = Callable[[str], None]

# Handler registry
_handlers: dict[TaskType, TaskHandler] = {}


def register_handler(task_type: TaskType) -> Callable[[TaskHandler], TaskHandler]:
    """
    Decorator to register a task handler.

    Args:
        task_type: The task type this handler formats.

    Returns:
        Decorator function.

    Example:
        @register_handler(TaskType.FIZZ)
        def handle_fizz(task: Task, now: datetime) -> str:
            ...
    """
    def decorator(handler: TaskHandler) -> TaskHandler:
        _handlers[task_type] = handler
        logger.debug(f"Registered handler for task type: {task_type}")
        return handler
    return decorator


def get_handler(task_type: TaskType) -> TaskHandler | None:
    """
    Get the handler for a task type.

    Args:
        task_type: The task type.

    Returns:
        The handler function or None if not found.
    """
    return _handlers.get(task_type)


def list_handlers() -> list[TaskType]:
    """List all registered task types."""
    return list(_handlers.keys())


# ============================================================================
# Built-in task handlers
# ============================================================================


@register_handler(TaskType.FIZZ)
def handle_fizz(task: Task, now: datetime) -> str:
    """Fizz tasks print their own id."""
    return f"{task.task_type.label} {task.id}"


@register_handler(TaskType.BUZZ)
def handle_buzz(task: Task, now: datetime) -> str:
    """Buzz tasks print their own id."""
    return f"{task.task_type.label} {task.id}"


@register_handler(TaskType.FIZZBUZZ)
def handle_fizzbuzz(task: Task, now: datetime) -> str:
    """Fizz Buzz tasks print the execution time."""
    return f"{task.task_type.label} {now.isoformat()}"


def format_output(task: Task, now: datetime) -> str:
    """
    Format the output line for a task.

    Args:
        task: The task being executed.
        now: Execution time.

    Returns:
        The formatted line.

    Raises:
        LookupError: If no handler is registered for the task type.
    """
    handler = get_handler(task.task_type)
    if handler is None:
        raise LookupError(f"No handler registered for task type: {task.task_type}")
    return handler(task, now)


def execute_task(
    task: Task,
    now: datetime | None = None,
    emit: Emitter = print,
) -> UUID | None:
    """
    Execute a task if it is eligible.

    Must be called at most once per claim; there is no retry here. A task
    that is not yet eligible is skipped without any side effect.

    Args:
        task: The claimed task.
        now: Execution time, defaults to the current time.
        emit: Sink receiving the output line.

    Returns:
        The task id if the task was handled, otherwise None.
    """
    now = now or datetime.now(UTC)

    if not task.is_eligible(now):
        logger.debug(
            "Task not yet eligible",
            extra={"task_id": str(task.id), "task_type": task.task_type.value}
        )
        return None

    emit(format_output(task, now))

    logger.info(
        "Task executed",
        extra={"task_id": str(task.id), "task_type": task.task_type.value}
    )
    return task.id
