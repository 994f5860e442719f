"""Login activity endpoint backed by the audit trail."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worktrack.access.principal import Principal
from worktrack.config import WorktrackConfig
from worktrack.database.models.audit import AuditAction
from worktrack.services import audit as audit_service
from worktrack.web.dependencies import get_config, get_current_principal, get_session_factory


class AuditEntryResponse(BaseModel):
    """Response schema for an audit entry."""

    id: int
    action: AuditAction
    performed_by_id: UUID | None
    project_id: UUID | None
    task_id: UUID | None
    affected_user_id: UUID | None
    details: str
    created_at: datetime

    model_config = {"from_attributes": True}


def create_activity_logs_router() -> APIRouter:
    """Create activity logs router.

    Routes:
        GET /activity-logs/ - Login successes and failures, newest first
    """
    router = APIRouter(prefix="/activity-logs", tags=["activity-logs"])

    @router.get("/", response_model=list[AuditEntryResponse])
    async def list_activity_logs(
        limit: int | None = Query(None, ge=1),  # noqa: B008
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
        config: WorktrackConfig = Depends(get_config),  # noqa: B008
    ) -> list[AuditEntryResponse]:
        async with session_factory() as session:
            entries = await audit_service.list_login_activity(
                session, principal, config.audit, limit=limit
            )
            return [AuditEntryResponse.model_validate(entry) for entry in entries]

    return router
