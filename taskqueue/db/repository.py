"""
Task repository for database operations.
Implements the data access patterns for the task lifecycle.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskqueue.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_LIST_STATES,
    DEFAULT_LIST_TYPES,
    TaskState,
    TaskType,
)
from taskqueue.db.models import Task

logger = logging.getLogger(__name__)


class TaskRepository:
    """
    Repository for task database operations.

    Implements atomic operations for:
    - Task submission
    - Batch claiming with FOR UPDATE SKIP LOCKED
    - Forward-only state transitions (complete, soft delete)
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    async def create_task(
        self,
        task_type: TaskType,
        now: datetime | None = None,
    ) -> Task:
        """
        Create a new incomplete task.

        Args:
            task_type: The task type.
            now: Submission time, defaults to the current time.

        Returns:
            The created Task.
        """
        task = Task(
            task_type=task_type,
            submitted=now or datetime.now(UTC),
            state=TaskState.INCOMPLETE,
        )
        self._session.add(task)
        await self._session.flush()

        logger.info(
            "Created new task",
            extra={"task_id": str(task.id), "task_type": task_type.value}
        )
        return task

    async def get_task(self, task_id: UUID) -> Task | None:
        """
        Get a task by ID.

        Args:
            task_id: The task UUID.

        Returns:
            The Task or None if not found.
        """
        stmt = select(Task).where(Task.id == task_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_tasks(
        self,
        types: Iterable[TaskType] = DEFAULT_LIST_TYPES,
        states: Iterable[TaskState] = DEFAULT_LIST_STATES,
    ) -> Sequence[Task]:
        """
        List tasks matching the type and state filters.

        Args:
            types: Task types to include.
            states: Task states to include.

        Returns:
            Matching tasks, newest submission first.
        """
        stmt = (
            select(Task)
            .where(
                and_(
                    Task.task_type.in_(list(types)),
                    Task.state.in_(list(states)),
                )
            )
            .order_by(Task.submitted.desc())
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def delete_task(self, task_id: UUID) -> bool:
        """
        Soft delete an incomplete task.

        Args:
            task_id: The task UUID.

        Returns:
            True if a task moved to DELETED, False if no incomplete task
            with that id exists.
        """
        stmt = (
            update(Task)
            .where(
                and_(
                    Task.id == task_id,
                    Task.state == TaskState.INCOMPLETE,
                )
            )
            .values(state=TaskState.DELETED)
            .returning(Task.id)
        )
        result = await self._session.execute(stmt)
        deleted = result.scalar_one_or_none()

        if deleted is not None:
            logger.info("Deleted task", extra={"task_id": str(deleted)})

        return deleted is not None

    async def claim_batch(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        now: datetime | None = None,
        eligible_only: bool = True,
    ) -> Sequence[Task]:
        """
        Lock a batch of incomplete tasks using FOR UPDATE SKIP LOCKED.

        This is the critical path for task distribution. Rows locked by
        another open transaction are skipped rather than awaited, so no two
        workers ever hold the same task. Locks are held until the caller's
        transaction commits or rolls back.

        Args:
            batch_size: Maximum number of tasks to lock.
            now: Reference time for the delay predicate.
            eligible_only: Only select tasks whose delay has elapsed.

        Returns:
            Locked tasks, newest submission first.
        """
        filters = [Task.state == TaskState.INCOMPLETE]

        if eligible_only:
            now = now or datetime.now(UTC)
            filters.append(
                or_(
                    *(
                        and_(
                            Task.task_type == task_type,
                            Task.submitted <= now - task_type.delay,
                        )
                        for task_type in TaskType
                    )
                )
            )

        stmt = (
            select(Task)
            .where(and_(*filters))
            .order_by(Task.submitted.desc())
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        result = await self._session.execute(stmt)
        tasks = result.scalars().all()

        if tasks:
            logger.debug(
                f"Claimed {len(tasks)} tasks",
                extra={"task_count": len(tasks)}
            )

        return tasks

    async def complete_tasks(self, task_ids: Iterable[UUID]) -> int:
        """
        Mark tasks as complete.

        Args:
            task_ids: IDs of tasks handled in the current transaction.

        Returns:
            Number of tasks transitioned.
        """
        ids = list(task_ids)
        if not ids:
            return 0

        stmt = (
            update(Task)
            .where(
                and_(
                    Task.id.in_(ids),
                    Task.state == TaskState.INCOMPLETE,
                )
            )
            .values(state=TaskState.COMPLETE)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def get_queue_depth(self) -> int:
        """
        Get the number of incomplete tasks.

        Returns:
            Number of incomplete tasks.
        """
        stmt = select(func.count()).select_from(Task).where(
            Task.state == TaskState.INCOMPLETE
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def get_task_stats(self) -> dict[str, int]:
        """
        Get task counts by state.

        Returns:
            Dictionary of state -> count, including zero counts.
        """
        stmt = select(Task.state, func.count()).group_by(Task.state)
        result = await self._session.execute(stmt)

        stats = {state.value: 0 for state in TaskState}
        for state, count in result.all():
            stats[TaskState(state).value] = count
        return stats
