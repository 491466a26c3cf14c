"""
Unit tests for task handlers.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from taskqueue.constants import TaskState, TaskType
from taskqueue.db.models import Task
from taskqueue.worker.handlers import (
    execute_task,
    format_output,
    get_handler,
    handle_fizz,
    handle_fizzbuzz,
    list_handlers,
)

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


def make_task(task_type: TaskType, state: TaskState = TaskState.INCOMPLETE) -> Task:
    return Task(id=uuid4(), task_type=task_type, submitted=T0, state=state)


class TestTaskHandlers:
    """Tests for the handler registry and output formatting."""

    def test_list_handlers(self):
        """Every task type has a handler."""
        assert set(list_handlers()) == set(TaskType)

    def test_get_handler_exists(self):
        """Test getting an existing handler."""
        assert get_handler(TaskType.FIZZ) is handle_fizz
        assert get_handler(TaskType.FIZZBUZZ) is handle_fizzbuzz

    def test_get_handler_not_exists(self):
        """Unknown keys have no handler."""
        assert get_handler("nonexistent") is None

    @pytest.mark.parametrize(
        ("task_type", "label"),
        [(TaskType.FIZZ, "Fizz"), (TaskType.BUZZ, "Buzz")],
    )
    def test_fizz_and_buzz_print_id(self, task_type: TaskType, label: str):
        """Fizz and Buzz print their label and the task id."""
        task = make_task(task_type)

        assert format_output(task, T0) == f"{label} {task.id}"

    def test_fizzbuzz_prints_time(self):
        """Fizz Buzz prints its label and the execution time."""
        task = make_task(TaskType.FIZZBUZZ)
        now = T0 + timedelta(seconds=1)

        assert format_output(task, now) == f"Fizz Buzz {now.isoformat()}"


class TestExecuteTask:
    """Tests for execute_task."""

    def test_eligible_task_emits_once(self):
        """An eligible task emits one line and returns its id."""
        task = make_task(TaskType.FIZZ)
        lines: list[str] = []

        handled = execute_task(task, now=T0 + timedelta(seconds=3), emit=lines.append)

        assert handled == task.id
        assert lines == [f"Fizz {task.id}"]

    def test_ineligible_task_has_no_side_effect(self):
        """A task whose delay has not elapsed is skipped silently."""
        task = make_task(TaskType.BUZZ)
        lines: list[str] = []

        handled = execute_task(task, now=T0 + timedelta(seconds=4), emit=lines.append)

        assert handled is None
        assert lines == []

    def test_fizzbuzz_runs_immediately(self):
        """Fizz Buzz has no delay."""
        task = make_task(TaskType.FIZZBUZZ)
        lines: list[str] = []

        assert execute_task(task, now=T0, emit=lines.append) == task.id
        assert lines == [f"Fizz Buzz {T0.isoformat()}"]

    def test_completed_task_is_not_executed(self):
        """Terminal tasks are never executed again."""
        task = make_task(TaskType.FIZZBUZZ, state=TaskState.COMPLETE)
        lines: list[str] = []

        assert execute_task(task, now=T0 + timedelta(hours=1), emit=lines.append) is None
        assert lines == []

    def test_emit_error_propagates(self):
        """Emit failures are not swallowed, so the claim transaction rolls back."""
        task = make_task(TaskType.FIZZBUZZ)

        def broken(line: str) -> None:
            raise RuntimeError("stdout closed")

        with pytest.raises(RuntimeError):
            execute_task(task, now=T0, emit=broken)
