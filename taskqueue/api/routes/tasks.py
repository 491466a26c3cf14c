"""
Task management routes.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskqueue.constants import SPAN_SUBMIT_TASK, TASKS_PREFIX
from taskqueue.db import TaskRepository, get_async_session
from taskqueue.observability.metrics import get_metrics
from taskqueue.observability.tracing import get_tracer
from taskqueue.types.api import (
    CreateTaskRequest,
    TaskFilter,
    TaskResponse,
    TaskStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=TASKS_PREFIX, tags=["Tasks"])

Session = Annotated[AsyncSession, Depends(get_async_session)]


def get_repository(session: Session) -> TaskRepository:
    """Dependency building a repository on the request's session."""
    return TaskRepository(session)


Repository = Annotated[TaskRepository, Depends(get_repository)]


@router.get(
    "",
    response_model=list[TaskResponse],
    summary="List tasks",
    description="List tasks filtered by comma separated types and states.",
)
async def list_tasks(
    repo: Repository,
    types: str | None = Query(default=None, examples=["fizz,buzz"]),
    states: str | None = Query(default=None, examples=["incomplete,deleted"]),
) -> list[TaskResponse]:
    """
    List tasks, newest submission first.

    Unknown filter tokens are ignored. Without a usable filter every type is
    listed and deleted tasks are left out.

    Args:
        repo: Task repository.
        types: Comma separated task types.
        states: Comma separated task states.

    Returns:
        Matching tasks.
    """
    task_filter = TaskFilter(types=types, states=states)
    tasks = await repo.list_tasks(
        types=task_filter.resolved_types(),
        states=task_filter.resolved_states(),
    )
    return [TaskResponse.model_validate(task) for task in tasks]


@router.post(
    "",
    response_class=PlainTextResponse,
    summary="Submit a task",
    description="Submit a new task and return its id as plain text.",
)
async def create_task(
    request: CreateTaskRequest,
    session: Session,
    repo: Repository,
) -> PlainTextResponse:
    """
    Create a new incomplete task.

    Args:
        request: Task creation request.
        session: Database session.
        repo: Task repository.

    Returns:
        The hyphenated task id.
    """
    with get_tracer().start_as_current_span(SPAN_SUBMIT_TASK) as span:
        task = await repo.create_task(request.task_type)
        await session.commit()
        span.set_attribute("task_id", str(task.id))

    get_metrics().record_task_submitted(task_type=request.task_type.value)

    return PlainTextResponse(str(task.id))


@router.get(
    "/stats/summary",
    response_model=TaskStatsResponse,
    summary="Get task statistics",
    description="Get task counts by state.",
)
async def get_task_stats(repo: Repository) -> TaskStatsResponse:
    """
    Get task statistics.

    Args:
        repo: Task repository.

    Returns:
        Counts by state and the number of incomplete tasks.
    """
    stats = await repo.get_task_stats()
    queue_depth = await repo.get_queue_depth()

    get_metrics().update_queue_depth(queue_depth)

    return TaskStatsResponse(stats=stats, queue_depth=queue_depth)


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Get task details",
    responses={status.HTTP_404_NOT_FOUND: {"description": "Task not found, body is null"}},
)
async def get_task(task_id: UUID, repo: Repository) -> Response | TaskResponse:
    """
    Get a task by ID.

    Args:
        task_id: The task UUID.
        repo: Task repository.

    Returns:
        The task, or a 404 with a null body.
    """
    task = await repo.get_task(task_id)

    if task is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=None)

    return TaskResponse.model_validate(task)


@router.delete(
    "/{task_id}",
    summary="Delete a task",
    description="Soft delete a task that has not completed yet.",
    responses={status.HTTP_404_NOT_FOUND: {"description": "No incomplete task with this id"}},
)
async def delete_task(task_id: UUID, session: Session, repo: Repository) -> Response:
    """
    Move an incomplete task to the deleted state.

    Args:
        task_id: The task UUID.
        session: Database session.
        repo: Task repository.

    Returns:
        200 if the task was deleted, 404 otherwise.
    """
    deleted = await repo.delete_task(task_id)
    await session.commit()

    if not deleted:
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    get_metrics().record_task_deleted()
    return Response(status_code=status.HTTP_200_OK)
