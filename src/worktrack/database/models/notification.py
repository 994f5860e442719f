"""Notification model for Worktrack.

Notification rows are emitted only by the fanout engine. The sole
user-driven change is flipping is_read. Like audit entries, they reference
tasks and projects by bare id so they stay readable after deletion.

The unique index on (recipient_id, task_id, type, dedupe_key) is the
idempotency guard for due-soon alerts: those rows carry a day-bucket
dedupe key, every other notification leaves it NULL and is therefore never
constrained (NULLs are distinct in unique indexes).
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from worktrack.database.models.base import AppendOnlyMixin, Base, enum_column


class NotificationType(str, enum.Enum):
    """Closed set of notification kinds."""

    task_assigned = "task_assigned"
    task_created = "task_created"
    task_updated = "task_updated"
    task_deleted = "task_deleted"
    status_changed = "status_changed"
    task_log_added = "task_log_added"
    due_soon = "due_soon"
    project_assigned = "project_assigned"
    project_created = "project_created"
    project_updated = "project_updated"
    project_deleted = "project_deleted"
    project_member_added = "project_member_added"
    member_added = "member_added"
    member_removed = "member_removed"
    user_created = "user_created"
    user_updated = "user_updated"


class Notification(AppendOnlyMixin, Base):
    """An inbox item for one recipient.

    Attributes:
        id: Monotonic integer id.
        recipient_id: User whose inbox holds the notification.
        message: Display text.
        type: Notification kind.
        task_id: Related task, if any.
        project_id: Related project, if any.
        is_read: Whether the recipient has read it.
        dedupe_key: Idempotency bucket for due-soon alerts, else NULL.
        created_at: Emission timestamp.
    """

    __tablename__ = "notifications"

    recipient_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        enum_column(NotificationType, "notification_type"),
        nullable=False,
    )
    task_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    dedupe_key: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_notifications_recipient_read_created", "recipient_id", "is_read", "created_at"),
        Index(
            "uq_notifications_dedupe",
            "recipient_id",
            "task_id",
            "type",
            "dedupe_key",
            unique=True,
        ),
    )
