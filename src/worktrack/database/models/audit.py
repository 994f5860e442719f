"""Audit entry model for Worktrack.

AuditEntry rows form the append-only trail of every permitted mutation.
They are never updated or deleted, and they reference projects, tasks and
users by bare id (no foreign keys) so that history survives deletion of
the referenced rows.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from worktrack.database.models.base import AppendOnlyMixin, Base, enum_column


class AuditAction(str, enum.Enum):
    """Closed set of audited actions."""

    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    PROJECT_DELETED = "PROJECT_DELETED"
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    TASK_CREATED = "TASK_CREATED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_DELETED = "TASK_DELETED"
    TASK_STATUS_CHANGED = "TASK_STATUS_CHANGED"
    TASK_LOG_ADDED = "TASK_LOG_ADDED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"


LOGIN_ACTIONS: frozenset[AuditAction] = frozenset(
    {AuditAction.LOGIN_SUCCESS, AuditAction.LOGIN_FAILED}
)


class AuditEntry(AppendOnlyMixin, Base):
    """One immutable record of a permitted state change.

    Attributes:
        id: Monotonic integer id, the tie breaker for equal timestamps.
        action: What happened.
        performed_by_id: Acting user; empty only for a failed login on an
            unknown email.
        project_id: Affected project, if any.
        task_id: Affected task, if any.
        affected_user_id: Affected user, if any.
        details: Human-readable description.
        created_at: When the action was recorded.
    """

    __tablename__ = "audit_entries"

    action: Mapped[AuditAction] = mapped_column(
        enum_column(AuditAction, "audit_action"),
        nullable=False,
    )
    performed_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    task_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    affected_user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_audit_entries_performed_by_created_at", "performed_by_id", "created_at"),
        Index("ix_audit_entries_project_id_created_at", "project_id", "created_at"),
        Index("ix_audit_entries_task_id_created_at", "task_id", "created_at"),
        Index("ix_audit_entries_action", "action"),
    )
