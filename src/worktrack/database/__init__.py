"""Database layer for Worktrack.

This module handles database connections, session management, and exposes
the ORM models used by the services.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    create_schema: Create all tables (development helper).
    Base: SQLAlchemy declarative base for all models.
"""

from worktrack.database.connection import create_schema, get_engine, get_session_factory
from worktrack.database.models import (
    AuditAction,
    AuditEntry,
    Base,
    Notification,
    NotificationType,
    Project,
    ProjectStatus,
    Role,
    Task,
    TaskLogEntry,
    TaskPriority,
    TaskStatus,
    TimestampMixin,
    User,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_schema",
    "Base",
    "TimestampMixin",
    "User",
    "Role",
    "Project",
    "ProjectStatus",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "TaskLogEntry",
    "AuditEntry",
    "AuditAction",
    "Notification",
    "NotificationType",
]
