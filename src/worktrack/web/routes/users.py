"""User management endpoints.

Admins list, create and (de)activate users; managers may list member-role
users to staff their projects.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worktrack.access.principal import Principal
from worktrack.config import WorktrackConfig
from worktrack.database.models.user import Role
from worktrack.logging import get_logger
from worktrack.services import users as user_service
from worktrack.web.dependencies import get_config, get_current_principal, get_session_factory

logger = get_logger(__name__)


# --- Pydantic Schemas ---


class UserSummary(BaseModel):
    """Compact user reference embedded in other resources."""

    id: UUID
    name: str
    email: str

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    """Response schema for user data."""

    id: UUID
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    """Request schema for creating a user."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = Role.member


def create_users_router() -> APIRouter:
    """Create users router.

    Routes:
        GET /users/ - List users visible to the caller
        POST /users/ - Create a user (admin)
        PATCH /users/{user_id}/toggle-status - Activate or deactivate (admin)
    """
    router = APIRouter(prefix="/users", tags=["users"])

    @router.get("/", response_model=list[UserResponse])
    async def list_users(
        role: Role | None = None,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> list[UserResponse]:
        async with session_factory() as session:
            users = await user_service.list_users(session, principal, role_filter=role)

        logger.info("users_listed", count=len(users))
        return [UserResponse.model_validate(user) for user in users]

    @router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def create_user(
        user_data: UserCreate,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
        config: WorktrackConfig = Depends(get_config),  # noqa: B008
    ) -> UserResponse:
        async with session_factory() as session:
            user = await user_service.create_user(
                session,
                principal,
                name=user_data.name,
                email=user_data.email,
                password=user_data.password,
                role=user_data.role,
                config=config.auth,
            )
            return UserResponse.model_validate(user)

    @router.patch("/{user_id}/toggle-status", response_model=UserResponse)
    async def toggle_user_status(
        user_id: UUID,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> UserResponse:
        async with session_factory() as session:
            user = await user_service.toggle_status(session, principal, user_id)
            return UserResponse.model_validate(user)

    return router
