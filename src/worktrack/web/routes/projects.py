"""Project REST API endpoints for Worktrack.

Every endpoint resolves the caller from the bearer token and delegates to
worktrack.services.projects, which authorizes, mutates, audits and fans
out inside one transaction. Responses are built before the session
closes.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worktrack.access.principal import Principal
from worktrack.database.models.project import ProjectStatus
from worktrack.logging import get_logger
from worktrack.services import projects as project_service
from worktrack.web.dependencies import get_current_principal, get_session_factory
from worktrack.web.routes.users import UserSummary

logger = get_logger(__name__)


# --- Pydantic Schemas ---


class ProjectCreate(BaseModel):
    """Request schema for creating a new project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    manager_id: UUID | None = None
    members: list[UUID] = Field(default_factory=list)
    status: ProjectStatus = ProjectStatus.active


class ProjectUpdate(BaseModel):
    """Request schema for updating a project (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    status: ProjectStatus | None = None


class MemberAdd(BaseModel):
    """Request schema for adding a project member."""

    user_id: UUID


class ProjectResponse(BaseModel):
    """Response schema for project data."""

    id: UUID
    name: str
    description: str | None
    status: ProjectStatus
    manager: UserSummary
    members: list[UserSummary]
    created_by_id: UUID
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectDeleted(BaseModel):
    """Response schema for a deleted project."""

    id: UUID
    message: str


def create_projects_router() -> APIRouter:
    """Create projects router.

    Routes:
        GET /projects/ - List projects visible to the caller
        GET /projects/{project_id} - Get project by ID
        POST /projects/ - Create new project
        PUT /projects/{project_id} - Update project
        DELETE /projects/{project_id} - Delete project and its tasks
        POST /projects/{project_id}/add-member - Add a member
        DELETE /projects/{project_id}/remove-member/{user_id} - Remove a member
    """
    router = APIRouter(prefix="/projects", tags=["projects"])

    @router.get("/", response_model=list[ProjectResponse])
    async def list_projects(
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> list[ProjectResponse]:
        async with session_factory() as session:
            projects = await project_service.list_projects(session, principal)
            return [ProjectResponse.model_validate(project) for project in projects]

    @router.get("/{project_id}", response_model=ProjectResponse)
    async def get_project(
        project_id: UUID,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ProjectResponse:
        async with session_factory() as session:
            project = await project_service.get_project(session, principal, project_id)
            return ProjectResponse.model_validate(project)

    @router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
    async def create_project(
        project_data: ProjectCreate,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ProjectResponse:
        async with session_factory() as session:
            project = await project_service.create_project(
                session,
                principal,
                name=project_data.name,
                description=project_data.description,
                manager_id=project_data.manager_id,
                member_ids=project_data.members,
                status=project_data.status,
            )
            return ProjectResponse.model_validate(project)

    @router.put("/{project_id}", response_model=ProjectResponse)
    async def update_project(
        project_id: UUID,
        project_data: ProjectUpdate,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ProjectResponse:
        async with session_factory() as session:
            project = await project_service.update_project(
                session,
                principal,
                project_id,
                name=project_data.name,
                description=project_data.description,
                status=project_data.status,
            )
            return ProjectResponse.model_validate(project)

    @router.delete("/{project_id}", response_model=ProjectDeleted)
    async def delete_project(
        project_id: UUID,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ProjectDeleted:
        async with session_factory() as session:
            await project_service.delete_project(session, principal, project_id)

        return ProjectDeleted(id=project_id, message="Project deleted successfully")

    @router.post("/{project_id}/add-member", response_model=ProjectResponse)
    async def add_member(
        project_id: UUID,
        member: MemberAdd,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ProjectResponse:
        async with session_factory() as session:
            project = await project_service.add_member(
                session, principal, project_id, member.user_id
            )
            return ProjectResponse.model_validate(project)

    @router.delete("/{project_id}/remove-member/{user_id}", response_model=ProjectResponse)
    async def remove_member(
        project_id: UUID,
        user_id: UUID,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ProjectResponse:
        async with session_factory() as session:
            project = await project_service.remove_member(session, principal, project_id, user_id)
            return ProjectResponse.model_validate(project)

    return router
