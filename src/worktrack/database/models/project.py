"""Project model for Worktrack.

Defines the Project table, the ProjectStatus enum and the project_members
association table. Each project has exactly one manager (the owner) and a
set of members who get read-only visibility. The manager is never also a
member.

Projects carry an optimistic version counter; every update, including
membership changes, bumps it so that concurrent edits of the same project
are detected.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Column, ForeignKey, Index, Integer, Table, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from worktrack.database.models.base import Base, TimestampMixin, enum_column
from worktrack.database.models.user import User


class ProjectStatus(enum.Enum):
    """Lifecycle status for a project.

    States:
        active: Project is being worked on.
        on_hold: Work temporarily suspended.
        completed: Project finished.
    """

    active = "active"
    on_hold = "on-hold"
    completed = "completed"


project_members = Table(
    "project_members",
    Base.metadata,
    Column("project_id", Uuid, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Index("ix_project_members_user_id", "user_id"),
)


class Project(TimestampMixin, Base):
    """A project owned by one manager and visible to its members.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        name: Human-readable project name.
        description: Optional free text.
        manager_id: Owning manager.
        created_by_id: User who created the project.
        status: Current lifecycle status.
        version: Optimistic concurrency counter.
        manager: Relationship to the owning User.
        members: Relationship to member Users.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
    )
    status: Mapped[ProjectStatus] = mapped_column(
        enum_column(ProjectStatus, "project_status"),
        default=ProjectStatus.active,
        nullable=False,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    manager: Mapped[User] = relationship(
        User,
        foreign_keys=[manager_id],
        lazy="selectin",
    )
    members: Mapped[list[User]] = relationship(
        User,
        secondary=project_members,
        lazy="selectin",
        order_by=User.name,
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_projects_manager_id", "manager_id"),
        Index("ix_projects_status", "status"),
    )

    @property
    def member_ids(self) -> frozenset[uuid.UUID]:
        """Ids of the current members."""
        return frozenset(member.id for member in self.members)
