"""Notification inbox: the per-recipient read side of the fanout engine."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.access.principal import Principal
from worktrack.config import NotificationConfig
from worktrack.database.models.notification import Notification
from worktrack.database.queries import notification as notification_queries
from worktrack.errors import NotFoundError
from worktrack.services.audit import resolve_limit
from worktrack.services.transaction import atomic

logger = structlog.get_logger(__name__)


@dataclass
class InboxPage:
    """A page of notifications plus the recipient's total unread count."""

    notifications: list[Notification]
    unread_count: int


async def list_inbox(
    session: AsyncSession,
    principal: Principal,
    config: NotificationConfig,
    unread_only: bool = False,
    limit: int | None = None,
) -> InboxPage:
    """List the caller's notifications, newest first."""
    page_size = resolve_limit(limit, config.inbox_default_limit, config.inbox_max_limit)
    async with atomic(session):
        notifications = await notification_queries.list_notifications(
            session,
            recipient_id=principal.id,
            unread_only=unread_only,
            limit=page_size,
        )
        unread = await notification_queries.count_unread(session, principal.id)
    return InboxPage(notifications=notifications, unread_count=unread)


async def mark_read(
    session: AsyncSession,
    principal: Principal,
    notification_id: int,
) -> Notification:
    """Mark one of the caller's notifications as read.

    Raises:
        NotFoundError: If the notification does not exist or belongs to
            someone else.
    """
    async with atomic(session):
        notification = await notification_queries.get_notification(session, notification_id)
        if notification is None or notification.recipient_id != principal.id:
            raise NotFoundError("Notification")
        return await notification_queries.mark_read(session, notification)


async def mark_all_read(session: AsyncSession, principal: Principal) -> int:
    """Mark all of the caller's notifications as read; returns how many changed."""
    async with atomic(session):
        return await notification_queries.mark_all_read(session, principal.id)
