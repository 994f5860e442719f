"""Initial schema for Worktrack.

Creates users, projects, project_members, tasks, task_log_entries,
audit_entries and notifications. History tables (audit entries and
notifications) reference projects and tasks without foreign keys so they
outlive the rows they describe.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLES = ("admin", "manager", "member")
PROJECT_STATUSES = ("active", "on-hold", "completed")
TASK_STATUSES = ("pending", "in-progress", "completed", "blocked")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")
AUDIT_ACTIONS = (
    "USER_CREATED",
    "USER_UPDATED",
    "USER_DEACTIVATED",
    "PROJECT_CREATED",
    "PROJECT_UPDATED",
    "PROJECT_DELETED",
    "MEMBER_ADDED",
    "MEMBER_REMOVED",
    "TASK_CREATED",
    "TASK_ASSIGNED",
    "TASK_UPDATED",
    "TASK_DELETED",
    "TASK_STATUS_CHANGED",
    "TASK_LOG_ADDED",
    "LOGIN_SUCCESS",
    "LOGIN_FAILED",
)
NOTIFICATION_TYPES = (
    "task_assigned",
    "task_created",
    "task_updated",
    "task_deleted",
    "status_changed",
    "task_log_added",
    "due_soon",
    "project_assigned",
    "project_created",
    "project_updated",
    "project_deleted",
    "project_member_added",
    "member_added",
    "member_removed",
    "user_created",
    "user_updated",
)

ENUMS = {
    "user_role": ROLES,
    "project_status": PROJECT_STATUSES,
    "task_status": TASK_STATUSES,
    "task_priority": TASK_PRIORITIES,
    "audit_action": AUDIT_ACTIONS,
    "notification_type": NOTIFICATION_TYPES,
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _history_id() -> sa.Column:
    return sa.Column(
        "id",
        sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
        primary_key=True,
        autoincrement=True,
    )


def upgrade() -> None:
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("manager_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", _enum("project_status"), nullable=False, server_default="active"),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_projects_manager_id", "projects", ["manager_id"])
    op.create_index("ix_projects_status", "projects", ["status"])

    op.create_table(
        "project_members",
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("assigned_to_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", _enum("task_status"), nullable=False, server_default="pending"),
        sa.Column("priority", _enum("task_priority"), nullable=False, server_default="medium"),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_assigned_to_id", "tasks", ["assigned_to_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_deadline", "tasks", ["deadline"])

    op.create_table(
        "task_log_entries",
        _history_id(),
        sa.Column(
            "task_id",
            sa.Uuid(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("progress_percent", sa.Integer(), nullable=True),
        sa.Column("status_at_entry", _enum("task_status"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "progress_percent IS NULL OR (progress_percent >= 0 AND progress_percent <= 100)",
            name="ck_task_log_entries_progress_percent",
        ),
    )
    op.create_index(
        "ix_task_log_entries_task_id_created_at",
        "task_log_entries",
        ["task_id", "created_at"],
    )

    op.create_table(
        "audit_entries",
        _history_id(),
        sa.Column("action", _enum("audit_action"), nullable=False),
        sa.Column("performed_by_id", sa.Uuid(), nullable=True),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("task_id", sa.Uuid(), nullable=True),
        sa.Column("affected_user_id", sa.Uuid(), nullable=True),
        sa.Column("details", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_audit_entries_performed_by_created_at",
        "audit_entries",
        ["performed_by_id", "created_at"],
    )
    op.create_index(
        "ix_audit_entries_project_id_created_at",
        "audit_entries",
        ["project_id", "created_at"],
    )
    op.create_index(
        "ix_audit_entries_task_id_created_at",
        "audit_entries",
        ["task_id", "created_at"],
    )
    op.create_index("ix_audit_entries_action", "audit_entries", ["action"])

    op.create_table(
        "notifications",
        _history_id(),
        sa.Column("recipient_id", sa.Uuid(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", _enum("notification_type"), nullable=False),
        sa.Column("task_id", sa.Uuid(), nullable=True),
        sa.Column("project_id", sa.Uuid(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dedupe_key", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_notifications_recipient_read_created",
        "notifications",
        ["recipient_id", "is_read", "created_at"],
    )
    # Idempotency guard for due-soon alerts; rows with a NULL dedupe_key are unconstrained
    op.create_index(
        "uq_notifications_dedupe",
        "notifications",
        ["recipient_id", "task_id", "type", "dedupe_key"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("audit_entries")
    op.drop_table("task_log_entries")
    op.drop_table("tasks")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_table("users")

    for name in reversed(list(ENUMS)):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
