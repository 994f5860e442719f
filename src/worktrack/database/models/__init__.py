"""SQLAlchemy ORM models for Worktrack.

This module defines the database schema: users, projects (with the
project_members association), tasks, task log entries, audit entries and
notifications.

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from worktrack.database.models.audit import LOGIN_ACTIONS, AuditAction, AuditEntry
from worktrack.database.models.base import AppendOnlyMixin, Base, TimestampMixin, utcnow
from worktrack.database.models.notification import Notification, NotificationType
from worktrack.database.models.project import Project, ProjectStatus, project_members
from worktrack.database.models.task import Task, TaskPriority, TaskStatus
from worktrack.database.models.task_log import TaskLogEntry
from worktrack.database.models.user import Role, User

__all__ = [
    "Base",
    "TimestampMixin",
    "AppendOnlyMixin",
    "utcnow",
    "User",
    "Role",
    "Project",
    "ProjectStatus",
    "project_members",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "TaskLogEntry",
    "AuditEntry",
    "AuditAction",
    "LOGIN_ACTIONS",
    "Notification",
    "NotificationType",
]
