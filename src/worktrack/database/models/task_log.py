"""Task progress log model for Worktrack.

A TaskLogEntry is one immutable link in the per-task progress chain. Only
the assignee appends entries; the chain is read oldest-first and is the
canonical narrative history of the task, while Task.status is the current
projection.
"""

from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from worktrack.database.models.base import AppendOnlyMixin, Base, enum_column
from worktrack.database.models.task import TaskStatus
from worktrack.database.models.user import User


class TaskLogEntry(AppendOnlyMixin, Base):
    """An append-only progress update on a task.

    Attributes:
        id: Monotonic integer id (from AppendOnlyMixin).
        task_id: Task the entry belongs to; entries go with their task.
        author_id: Assignee who wrote the entry.
        content: Trimmed narrative text.
        progress_percent: Optional progress in [0, 100].
        status_at_entry: Task status recorded with the entry.
        created_at: Append timestamp (from AppendOnlyMixin).
        author: Relationship to the authoring User.
    """

    __tablename__ = "task_log_entries"

    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    progress_percent: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status_at_entry: Mapped[TaskStatus | None] = mapped_column(
        enum_column(TaskStatus, "task_status"),
        nullable=True,
    )

    author: Mapped[User] = relationship(User, lazy="selectin")

    __table_args__ = (
        Index("ix_task_log_entries_task_id_created_at", "task_id", "created_at"),
        CheckConstraint(
            "progress_percent IS NULL OR (progress_percent >= 0 AND progress_percent <= 100)",
            name="ck_task_log_entries_progress_percent",
        ),
    )
