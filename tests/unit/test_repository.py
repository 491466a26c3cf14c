"""
Unit tests for the task repository.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest_asyncio
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from taskqueue.constants import TaskState, TaskType
from taskqueue.db.repository import TaskRepository


class TestTaskRepository:
    """Tests for TaskRepository."""

    @pytest_asyncio.fixture
    async def repo(self, db_session: AsyncSession) -> TaskRepository:
        """Create a repository instance."""
        return TaskRepository(db_session)

    async def test_create_task_success(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Test successful task creation."""
        task = await repo.create_task(TaskType.FIZZ)
        await db_session.commit()

        assert task.id is not None
        assert task.task_type == TaskType.FIZZ
        assert task.state == TaskState.INCOMPLETE
        assert task.submitted is not None

    async def test_get_task_by_id(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Test getting a task by ID."""
        task = await repo.create_task(TaskType.BUZZ)
        await db_session.commit()

        retrieved = await repo.get_task(task.id)

        assert retrieved is not None
        assert retrieved.id == task.id
        assert retrieved.task_type == TaskType.BUZZ

    async def test_get_task_not_found(self, repo: TaskRepository):
        """Test getting a non-existent task."""
        assert await repo.get_task(uuid4()) is None

    async def test_list_tasks_defaults_exclude_deleted(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Listing without filters returns incomplete and complete tasks of every type."""
        now = datetime.now(UTC)
        fizz = await repo.create_task(TaskType.FIZZ, now=now - timedelta(seconds=3))
        buzz = await repo.create_task(TaskType.BUZZ, now=now - timedelta(seconds=2))
        fizzbuzz = await repo.create_task(TaskType.FIZZBUZZ, now=now - timedelta(seconds=1))
        await db_session.commit()

        await repo.complete_tasks([buzz.id])
        await repo.delete_task(fizzbuzz.id)
        await db_session.commit()

        tasks = await repo.list_tasks()

        assert [t.id for t in tasks] == [buzz.id, fizz.id]

    async def test_list_tasks_with_filters(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Explicit filters can include deleted tasks."""
        fizz = await repo.create_task(TaskType.FIZZ)
        await repo.create_task(TaskType.BUZZ)
        await db_session.commit()
        await repo.delete_task(fizz.id)
        await db_session.commit()

        tasks = await repo.list_tasks(types=[TaskType.FIZZ], states=[TaskState.DELETED])

        assert [t.id for t in tasks] == [fizz.id]

    async def test_delete_incomplete_task(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Deleting moves an incomplete task to DELETED once."""
        task = await repo.create_task(TaskType.FIZZ)
        task_id = task.id
        await db_session.commit()

        assert await repo.delete_task(task.id) is True
        await db_session.commit()
        assert await repo.delete_task(task.id) is False

        db_session.expire_all()
        stored = await repo.get_task(task_id)
        assert stored.state == TaskState.DELETED

    async def test_delete_complete_task_is_noop(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """A completed task cannot be deleted."""
        task = await repo.create_task(TaskType.FIZZBUZZ)
        task_id = task.id
        await db_session.commit()
        await repo.complete_tasks([task.id])
        await db_session.commit()

        assert await repo.delete_task(task.id) is False

        db_session.expire_all()
        stored = await repo.get_task(task_id)
        assert stored.state == TaskState.COMPLETE

    async def test_delete_unknown_task(self, repo: TaskRepository):
        assert await repo.delete_task(uuid4()) is False

    async def test_claim_batch_limit_and_order(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """At most batch_size tasks are claimed, newest submission first."""
        now = datetime.now(UTC)
        created = [
            await repo.create_task(TaskType.FIZZBUZZ, now=now - timedelta(seconds=i))
            for i in range(7)
        ]
        await db_session.commit()

        claimed = await repo.claim_batch(batch_size=5, now=now)
        await db_session.commit()

        assert [t.id for t in claimed] == [t.id for t in created[:5]]

    async def test_claim_batch_delay_predicate(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Only tasks whose delay elapsed are selected when eligible_only is set."""
        now = datetime.now(UTC)
        fizz_id = (await repo.create_task(TaskType.FIZZ, now=now)).id
        buzz_id = (await repo.create_task(TaskType.BUZZ, now=now)).id
        fizzbuzz_id = (await repo.create_task(TaskType.FIZZBUZZ, now=now)).id
        await db_session.commit()

        async def claimed_ids(**kwargs) -> set:
            ids = {t.id for t in await repo.claim_batch(**kwargs)}
            # Release the locks; rollback expires the loaded instances
            await db_session.rollback()
            return ids

        assert await claimed_ids(now=now) == {fizzbuzz_id}
        assert await claimed_ids(now=now + timedelta(seconds=3)) == {fizzbuzz_id, fizz_id}
        assert await claimed_ids(now=now + timedelta(seconds=5)) == {fizzbuzz_id, fizz_id, buzz_id}
        assert await claimed_ids(now=now, eligible_only=False) == {fizzbuzz_id, fizz_id, buzz_id}

    async def test_completed_tasks_are_never_reclaimed(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Once complete, a task is not selected again."""
        task = await repo.create_task(TaskType.FIZZBUZZ)
        await db_session.commit()

        claimed = await repo.claim_batch()
        assert await repo.complete_tasks([t.id for t in claimed]) == 1
        await db_session.commit()

        assert await repo.claim_batch(eligible_only=False) == []
        assert await repo.complete_tasks([task.id]) == 0

    async def test_task_stats(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Test counts by state."""
        first = await repo.create_task(TaskType.FIZZ)
        await repo.create_task(TaskType.BUZZ)
        await db_session.commit()
        await repo.delete_task(first.id)
        await db_session.commit()

        assert await repo.get_task_stats() == {"incomplete": 1, "complete": 0, "deleted": 1}
        assert await repo.get_queue_depth() == 1

    async def test_state_defaults_to_incomplete_in_database(
        self,
        repo: TaskRepository,
        db_session: AsyncSession,
    ):
        """Rows inserted without a state start incomplete, matching the migration."""
        task_id = uuid4()
        await db_session.execute(
            sa.text("INSERT INTO tasks (id, task_type) VALUES (:id, 'fizz')"),
            {"id": task_id},
        )
        await db_session.commit()

        stored = await repo.get_task(task_id)

        assert stored.state == TaskState.INCOMPLETE
        assert stored.submitted is not None
