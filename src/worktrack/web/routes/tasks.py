"""Task REST API endpoints for Worktrack.

Includes the progress log sub-resource (/tasks/{task_id}/logs). Listing
tasks also generates due-soon notifications for the caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worktrack.access.principal import Principal
from worktrack.config import WorktrackConfig
from worktrack.database.models.task import TaskPriority, TaskStatus
from worktrack.logging import get_logger
from worktrack.services import task_logs as task_log_service
from worktrack.services import tasks as task_service
from worktrack.web.dependencies import get_config, get_current_principal, get_session_factory
from worktrack.web.routes.users import UserSummary

logger = get_logger(__name__)


# --- Pydantic Schemas ---


class TaskCreate(BaseModel):
    """Request schema for creating tasks.

    assigned_to takes a single user id or a list; one task is created per
    assignee.
    """

    project_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    assigned_to: list[UUID] = Field(default_factory=list)
    status: TaskStatus = TaskStatus.pending
    priority: TaskPriority = TaskPriority.medium
    deadline: datetime | None = None

    @field_validator("assigned_to", mode="before")
    @classmethod
    def wrap_single_assignee(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (str, UUID)):
            return [v]
        return v


class TaskUpdate(BaseModel):
    """Request schema for editing task details (all fields optional)."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority | None = None
    deadline: datetime | None = None


class TaskStatusUpdate(BaseModel):
    """Request schema for a plain status change."""

    status: TaskStatus


class TaskAssign(BaseModel):
    """Request schema for (re)assigning a task."""

    assigned_to: UUID


class TaskLogCreate(BaseModel):
    """Request schema for appending a progress entry."""

    content: str
    progress_percent: int | None = None
    status: TaskStatus | None = None


class TaskResponse(BaseModel):
    """Response schema for task data."""

    id: UUID
    project_id: UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    deadline: datetime | None
    assigned_to_id: UUID | None
    assignee: UserSummary | None
    created_by_id: UUID
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskLogResponse(BaseModel):
    """Response schema for a progress log entry."""

    id: int
    task_id: UUID
    author: UserSummary
    content: str
    progress_percent: int | None
    status_at_entry: TaskStatus | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TaskDeleted(BaseModel):
    """Response schema for a deleted task."""

    id: UUID
    message: str


def create_tasks_router() -> APIRouter:
    """Create tasks router.

    Routes:
        GET /tasks/ - List tasks visible to the caller
        GET /tasks/{task_id} - Get task by ID
        POST /tasks/ - Create one task per assignee
        PUT /tasks/{task_id} - Edit task details
        DELETE /tasks/{task_id} - Delete task and its log chain
        PATCH /tasks/{task_id}/status - Change status
        PATCH /tasks/{task_id}/assign - Assign to a project member
        GET /tasks/{task_id}/logs - Read the progress chain
        POST /tasks/{task_id}/logs - Append a progress entry
    """
    router = APIRouter(prefix="/tasks", tags=["tasks"])

    @router.get("/", response_model=list[TaskResponse])
    async def list_tasks(
        project_id: UUID | None = None,
        status: TaskStatus | None = None,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
        config: WorktrackConfig = Depends(get_config),  # noqa: B008
    ) -> list[TaskResponse]:
        async with session_factory() as session:
            tasks = await task_service.list_tasks(
                session,
                principal,
                config.notifications,
                project_id=project_id,
                status=status,
            )
            return [TaskResponse.model_validate(task) for task in tasks]

    @router.get("/{task_id}", response_model=TaskResponse)
    async def get_task(
        task_id: UUID,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> TaskResponse:
        async with session_factory() as session:
            task = await task_service.get_task(session, principal, task_id)
            return TaskResponse.model_validate(task)

    @router.post("/", response_model=list[TaskResponse], status_code=status.HTTP_201_CREATED)
    async def create_tasks(
        task_data: TaskCreate,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> list[TaskResponse]:
        async with session_factory() as session:
            tasks = await task_service.create_tasks(
                session,
                principal,
                project_id=task_data.project_id,
                title=task_data.title,
                assignee_ids=task_data.assigned_to,
                description=task_data.description,
                status=task_data.status,
                priority=task_data.priority,
                deadline=task_data.deadline,
            )
            return [TaskResponse.model_validate(task) for task in tasks]

    @router.put("/{task_id}", response_model=TaskResponse)
    async def update_task(
        task_id: UUID,
        task_data: TaskUpdate,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> TaskResponse:
        fields: dict[str, Any] = {
            "title": task_data.title,
            "description": task_data.description,
            "priority": task_data.priority,
        }
        # An explicit null clears the deadline; omitting it keeps it.
        if "deadline" in task_data.model_fields_set:
            fields["deadline"] = task_data.deadline

        async with session_factory() as session:
            task = await task_service.update_task(session, principal, task_id, **fields)
            return TaskResponse.model_validate(task)

    @router.delete("/{task_id}", response_model=TaskDeleted)
    async def delete_task(
        task_id: UUID,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> TaskDeleted:
        async with session_factory() as session:
            await task_service.delete_task(session, principal, task_id)

        return TaskDeleted(id=task_id, message="Task deleted successfully")

    @router.patch("/{task_id}/status", response_model=TaskResponse)
    async def update_task_status(
        task_id: UUID,
        status_data: TaskStatusUpdate,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> TaskResponse:
        async with session_factory() as session:
            task = await task_service.update_status(
                session, principal, task_id, status_data.status
            )
            return TaskResponse.model_validate(task)

    @router.patch("/{task_id}/assign", response_model=TaskResponse)
    async def assign_task(
        task_id: UUID,
        assign_data: TaskAssign,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> TaskResponse:
        async with session_factory() as session:
            task = await task_service.assign_task(
                session, principal, task_id, assign_data.assigned_to
            )
            return TaskResponse.model_validate(task)

    @router.get("/{task_id}/logs", response_model=list[TaskLogResponse])
    async def list_task_logs(
        task_id: UUID,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> list[TaskLogResponse]:
        async with session_factory() as session:
            entries = await task_log_service.list_entries(session, principal, task_id)
            return [TaskLogResponse.model_validate(entry) for entry in entries]

    @router.post(
        "/{task_id}/logs",
        response_model=TaskLogResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def append_task_log(
        task_id: UUID,
        log_data: TaskLogCreate,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> TaskLogResponse:
        async with session_factory() as session:
            entry = await task_log_service.append_entry(
                session,
                principal,
                task_id,
                content=log_data.content,
                progress_percent=log_data.progress_percent,
                status=log_data.status,
            )
            return TaskLogResponse.model_validate(entry)

    return router
