"""User model for Worktrack.

Defines the User table and the closed Role enum. A user row is the
persisted form of a Principal; the password hash is managed by the
authentication service and never leaves the database layer.
"""

from __future__ import annotations

import enum

from sqlalchemy import Boolean, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from worktrack.database.models.base import Base, TimestampMixin, enum_column


class Role(enum.Enum):
    """The three fixed roles of the system.

    States:
        admin: Manages users and observes everything; never mutates
            projects or tasks.
        manager: Owns projects and the tasks inside them.
        member: Works on tasks assigned to them.
    """

    admin = "admin"
    manager = "manager"
    member = "member"


class User(TimestampMixin, Base):
    """An account that can authenticate and act as a Principal.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        name: Display name.
        email: Unique, lower-cased login email.
        password_hash: bcrypt hash of the password.
        role: Fixed role of the user.
        is_active: Inactive users are rejected at authentication.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[Role] = mapped_column(
        enum_column(Role, "user_role"),
        default=Role.member,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("ix_users_role", "role"),)
