"""FastAPI dependencies shared by the route modules.

The session factory and configuration live on app.state; the calling
principal is resolved per request from the bearer token.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worktrack.access.principal import Principal
from worktrack.config import WorktrackConfig
from worktrack.errors import AuthenticationError
from worktrack.logging import bind_principal_context
from worktrack.services.auth import resolve_principal

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory from app state."""
    return request.app.state.session_factory  # type: ignore[no-any-return]


def get_config(request: Request) -> WorktrackConfig:
    """Application configuration from app state."""
    return request.app.state.config  # type: ignore[no-any-return]


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
    session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
        get_session_factory
    ),
    config: WorktrackConfig = Depends(get_config),  # noqa: B008
) -> Principal:
    """Resolve the bearer token to an active principal.

    Raises:
        AuthenticationError: If no valid token was sent.
        ForbiddenError: If the account has been deactivated.
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    async with session_factory() as session:
        principal = await resolve_principal(session, credentials.credentials, config.auth)

    bind_principal_context(principal_id=str(principal.id), role=principal.role.value)
    return principal
