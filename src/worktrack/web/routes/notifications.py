"""Notification inbox endpoints.

Notifications are created only by the fanout engine; the inbox can list
them and flip them to read.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from worktrack.access.principal import Principal
from worktrack.config import WorktrackConfig
from worktrack.database.models.notification import NotificationType
from worktrack.services import inbox as inbox_service
from worktrack.web.dependencies import get_config, get_current_principal, get_session_factory


class NotificationResponse(BaseModel):
    """Response schema for a notification."""

    id: int
    message: str
    type: NotificationType
    task_id: UUID | None
    project_id: UUID | None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class InboxResponse(BaseModel):
    """A page of the caller's inbox."""

    notifications: list[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(BaseModel):
    """Number of notifications flipped to read."""

    updated: int


def create_notifications_router() -> APIRouter:
    """Create notifications router.

    Routes:
        GET /notifications/ - List the caller's notifications
        PATCH /notifications/mark-all-read - Mark all as read
        PATCH /notifications/{notification_id}/read - Mark one as read
    """
    router = APIRouter(prefix="/notifications", tags=["notifications"])

    @router.get("/", response_model=InboxResponse)
    async def list_notifications(
        unread_only: bool = Query(False, alias="unreadOnly"),  # noqa: B008
        limit: int | None = Query(None, ge=1),  # noqa: B008
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
        config: WorktrackConfig = Depends(get_config),  # noqa: B008
    ) -> InboxResponse:
        async with session_factory() as session:
            page = await inbox_service.list_inbox(
                session,
                principal,
                config.notifications,
                unread_only=unread_only,
                limit=limit,
            )
            return InboxResponse(
                notifications=[
                    NotificationResponse.model_validate(n) for n in page.notifications
                ],
                unread_count=page.unread_count,
            )

    @router.patch("/mark-all-read", response_model=MarkAllReadResponse)
    async def mark_all_read(
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> MarkAllReadResponse:
        async with session_factory() as session:
            updated = await inbox_service.mark_all_read(session, principal)

        return MarkAllReadResponse(updated=updated)

    @router.patch("/{notification_id}/read", response_model=NotificationResponse)
    async def mark_read(
        notification_id: int,
        principal: Principal = Depends(get_current_principal),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> NotificationResponse:
        async with session_factory() as session:
            notification = await inbox_service.mark_read(session, principal, notification_id)
            return NotificationResponse.model_validate(notification)

    return router
