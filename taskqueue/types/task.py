"""
Task-related type definitions for internal use.
"""

from dataclasses import dataclass, field
from uuid import UUID


@dataclass
class ClaimResult:
    """
    Outcome of one committed claim iteration.

    `claimed` counts the rows locked by the iteration, `completed` the ones
    executed and moved to COMPLETE before the commit.
    """

    worker_id: str
    claimed: int = 0
    completed_ids: list[UUID] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def completed(self) -> int:
        """Number of tasks completed by the iteration."""
        return len(self.completed_ids)

    @property
    def skipped(self) -> int:
        """Locked tasks left incomplete because their delay had not elapsed."""
        return self.claimed - self.completed

    @property
    def is_idle(self) -> bool:
        """Whether the iteration made no progress."""
        return self.completed == 0
