"""FastAPI route definitions for the Worktrack REST API.

Each module exposes a create_*_router() factory plus its request and
response schemas.
"""

from __future__ import annotations

from worktrack.web.routes.activity_logs import AuditEntryResponse, create_activity_logs_router
from worktrack.web.routes.auth import LoginRequest, LoginResponse, create_auth_router
from worktrack.web.routes.health import HealthResponse, ReadinessResponse, create_health_router
from worktrack.web.routes.notifications import (
    InboxResponse,
    NotificationResponse,
    create_notifications_router,
)
from worktrack.web.routes.projects import (
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    create_projects_router,
)
from worktrack.web.routes.tasks import (
    TaskCreate,
    TaskLogCreate,
    TaskLogResponse,
    TaskResponse,
    TaskStatusUpdate,
    TaskUpdate,
    create_tasks_router,
)
from worktrack.web.routes.users import UserCreate, UserResponse, create_users_router

__all__ = [
    # Activity logs
    "AuditEntryResponse",
    "create_activity_logs_router",
    # Auth
    "LoginRequest",
    "LoginResponse",
    "create_auth_router",
    # Health
    "HealthResponse",
    "ReadinessResponse",
    "create_health_router",
    # Notifications
    "InboxResponse",
    "NotificationResponse",
    "create_notifications_router",
    # Projects
    "ProjectCreate",
    "ProjectResponse",
    "ProjectUpdate",
    "create_projects_router",
    # Tasks
    "TaskCreate",
    "TaskLogCreate",
    "TaskLogResponse",
    "TaskResponse",
    "TaskStatusUpdate",
    "TaskUpdate",
    "create_tasks_router",
    # Users
    "UserCreate",
    "UserResponse",
    "create_users_router",
]
