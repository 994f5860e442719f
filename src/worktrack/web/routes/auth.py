"""Login endpoint: exchanges credentials for a bearer token."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worktrack.config import WorktrackConfig
from worktrack.services import auth as auth_service
from worktrack.web.dependencies import get_config, get_session_factory
from worktrack.web.routes.users import UserResponse


class LoginRequest(BaseModel):
    """Request schema for logging in."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Issued token and the logged-in user."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


def create_auth_router() -> APIRouter:
    """Create auth router.

    Routes:
        POST /auth/login - Check credentials and issue a token
    """
    router = APIRouter(prefix="/auth", tags=["auth"])

    @router.post("/login", response_model=LoginResponse)
    async def login(
        credentials: LoginRequest,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
        config: WorktrackConfig = Depends(get_config),  # noqa: B008
    ) -> LoginResponse:
        async with session_factory() as session:
            result = await auth_service.login(
                session, credentials.email, credentials.password, config.auth
            )
            return LoginResponse(
                access_token=result.token,
                user=UserResponse.model_validate(result.user),
            )

    return router
