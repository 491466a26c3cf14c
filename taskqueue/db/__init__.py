"""
Database module.
Contains database connection, models, and repository implementations.
"""

from taskqueue.db.connection import (
    Database,
    get_async_session,
    get_database,
)
from taskqueue.db.models import Base, Task
from taskqueue.db.repository import TaskRepository

__all__ = [
    "Database",
    "get_async_session",
    "get_database",
    "Task",
    "Base",
    "TaskRepository",
]
