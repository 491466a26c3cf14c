"""Initial schema with tasks table

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Enumerations are stored as their lowercase tokens in text columns
    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("task_type", sa.String(32), nullable=False),
        sa.Column(
            "submitted",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "state",
            sa.String(32),
            nullable=False,
            server_default="incomplete",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "task_type IN ('fizz', 'buzz', 'fizzbuzz')",
            name="task_type",
        ),
        sa.CheckConstraint(
            "state IN ('incomplete', 'complete', 'deleted')",
            name="task_state",
        ),
    )

    # Index for queue polling and listing
    op.create_index("ix_tasks_state_submitted", "tasks", ["state", "submitted"])


def downgrade() -> None:
    op.drop_index("ix_tasks_state_submitted")
    op.drop_table("tasks")
