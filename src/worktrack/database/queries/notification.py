"""Notification query functions for Worktrack.

Notification writes are pure inserts. The due-soon path uses a
conditional insert against the uq_notifications_dedupe unique index so
that concurrent polls cannot create duplicates.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.database.models.base import utcnow
from worktrack.database.models.notification import Notification, NotificationType

logger = structlog.get_logger(__name__)


async def insert_notifications(
    session: AsyncSession,
    rows: Sequence[dict[str, Any]],
) -> list[Notification]:
    """Insert a batch of notifications.

    Args:
        session: Active async database session.
        rows: Keyword arguments for each Notification (recipient_id,
            message, type and optional task_id / project_id).

    Returns:
        The created Notification instances, in input order.
    """
    notifications = [Notification(**row) for row in rows]
    session.add_all(notifications)
    await session.flush()
    return notifications


async def has_recent_notification(
    session: AsyncSession,
    recipient_id: UUID,
    task_id: UUID,
    notification_type: NotificationType,
    since: datetime,
) -> bool:
    """Whether a notification of this type for (recipient, task) exists since a time."""
    stmt = (
        select(Notification.id)
        .where(
            Notification.recipient_id == recipient_id,
            Notification.task_id == task_id,
            Notification.type == notification_type,
            Notification.created_at >= since,
        )
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def insert_notification_if_absent(
    session: AsyncSession,
    recipient_id: UUID,
    message: str,
    notification_type: NotificationType,
    dedupe_key: str,
    task_id: UUID | None = None,
    project_id: UUID | None = None,
) -> bool:
    """Insert a notification unless its dedupe slot is already taken.

    Uses INSERT ... ON CONFLICT DO NOTHING on PostgreSQL and SQLite, and a
    savepoint around a plain insert elsewhere.

    Returns:
        True if a row was inserted, False if it already existed.
    """
    values = {
        "recipient_id": recipient_id,
        "message": message,
        "type": notification_type,
        "task_id": task_id,
        "project_id": project_id,
        "dedupe_key": dedupe_key,
        "is_read": False,
        "created_at": utcnow(),
    }

    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        stmt = postgresql.insert(Notification).values(**values).on_conflict_do_nothing()
    elif dialect_name == "sqlite":
        stmt = sqlite.insert(Notification).values(**values).on_conflict_do_nothing()
    else:
        try:
            async with session.begin_nested():
                await session.execute(insert(Notification).values(**values))
        except IntegrityError:
            return False
        return True

    result = await session.execute(stmt)
    return result.rowcount == 1


async def get_notification(session: AsyncSession, notification_id: int) -> Notification | None:
    """Retrieve a notification by ID."""
    stmt = select(Notification).where(Notification.id == notification_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_notifications(
    session: AsyncSession,
    recipient_id: UUID,
    unread_only: bool = False,
    limit: int | None = None,
    notification_type: NotificationType | None = None,
) -> list[Notification]:
    """List a recipient's notifications, newest first.

    Args:
        session: Active async database session.
        recipient_id: Inbox owner.
        unread_only: Only unread notifications.
        limit: Maximum number to return.
        notification_type: Only notifications of this type.

    Returns:
        List of Notification instances.
    """
    stmt = select(Notification).where(Notification.recipient_id == recipient_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    if notification_type is not None:
        stmt = stmt.where(Notification.type == notification_type)
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_unread(session: AsyncSession, recipient_id: UUID) -> int:
    """Count a recipient's unread notifications."""
    stmt = select(func.count(Notification.id)).where(
        Notification.recipient_id == recipient_id,
        Notification.is_read.is_(False),
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def mark_read(session: AsyncSession, notification: Notification) -> Notification:
    """Mark a single notification as read."""
    notification.is_read = True
    await session.flush()
    return notification


async def mark_all_read(session: AsyncSession, recipient_id: UUID) -> int:
    """Mark every unread notification of a recipient as read.

    Returns:
        Number of notifications updated.
    """
    stmt = (
        update(Notification)
        .where(
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    updated = result.rowcount or 0

    logger.info("notifications_marked_read", recipient_id=str(recipient_id), count=updated)
    return updated
