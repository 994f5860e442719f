"""Task model for Worktrack.

Defines the Task table with its TaskStatus and TaskPriority enums. A task
belongs to exactly one project and is assigned to at most one user. Its
visibility is derived from the project; its status is the current
projection of the progress log chain.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from worktrack.database.models.base import Base, TimestampMixin, UTCDateTime, enum_column
from worktrack.database.models.project import Project
from worktrack.database.models.user import User


class TaskStatus(enum.Enum):
    """Task lifecycle status.

    States:
        pending: Not started.
        in_progress: Being worked on.
        completed: Done.
        blocked: Waiting on an external factor.
    """

    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"
    blocked = "blocked"


class TaskPriority(enum.Enum):
    """Task priority level."""

    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class Task(TimestampMixin, Base):
    """A unit of work inside a project.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        project_id: Owning project.
        title: Short task title.
        description: Optional details.
        assigned_to_id: Assignee, if any.
        created_by_id: Manager who created the task.
        status: Current status.
        priority: Priority level.
        deadline: Optional due timestamp.
        version: Optimistic concurrency counter.
        project: Relationship to the parent Project.
        assignee: Relationship to the assigned User.
    """

    __tablename__ = "tasks"

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    assigned_to_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=True,
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )
    status: Mapped[TaskStatus] = mapped_column(
        enum_column(TaskStatus, "task_status"),
        default=TaskStatus.pending,
        nullable=False,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        enum_column(TaskPriority, "task_priority"),
        default=TaskPriority.medium,
        nullable=False,
    )
    deadline: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    project: Mapped[Project] = relationship(
        Project,
        lazy="selectin",
    )
    assignee: Mapped[User | None] = relationship(
        User,
        foreign_keys=[assigned_to_id],
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_tasks_project_id", "project_id"),
        Index("ix_tasks_assigned_to_id", "assigned_to_id"),
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_deadline", "deadline"),
    )
