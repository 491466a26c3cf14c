"""
SQLAlchemy database models.
Defines the Task table, the only persisted entity.
"""

from datetime import datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Enum, Index, func
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from taskqueue.constants import TaskState, TaskType


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _token_enum(enum_cls: type, name: str) -> Enum:
    # Stored as plain text holding the lowercase token, guarded by a CHECK constraint
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=32,
        values_callable=lambda x: [e.value for e in x],
    )


class Task(Base):
    """
    Task model representing a unit of work in the queue.

    Rows are never physically deleted. `state` only moves forward:
    incomplete -> complete, or incomplete -> deleted.
    """

    __tablename__ = "tasks"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        nullable=False,
    )

    task_type: Mapped[TaskType] = mapped_column(
        _token_enum(TaskType, "task_type"),
        nullable=False,
    )

    submitted: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    state: Mapped[TaskState] = mapped_column(
        _token_enum(TaskState, "task_state"),
        nullable=False,
        default=TaskState.INCOMPLETE,
        server_default=TaskState.INCOMPLETE.value,
    )

    __table_args__ = (
        # Index for efficient queue polling
        Index("ix_tasks_state_submitted", "state", "submitted"),
    )

    @property
    def delay(self) -> timedelta:
        """Get the execution delay for this task's type."""
        return self.task_type.delay

    def is_eligible(self, now: datetime) -> bool:
        """Check if the task may be executed at `now`."""
        if self.state != TaskState.INCOMPLETE:
            return False
        return now - self.submitted >= self.delay

    def __repr__(self) -> str:
        return (
            f"Task(id={self.id}, type={self.task_type}, "
            f"state={self.state}, submitted={self.submitted})"
        )
