"""Audit entry query functions for Worktrack."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.database.models.audit import AuditAction, AuditEntry

logger = structlog.get_logger(__name__)


async def append_audit_entry(
    session: AsyncSession,
    action: AuditAction,
    performed_by_id: UUID | None,
    details: str = "",
    project_id: UUID | None = None,
    task_id: UUID | None = None,
    affected_user_id: UUID | None = None,
) -> AuditEntry:
    """Append one immutable audit entry.

    Args:
        session: Active async database session.
        action: What happened.
        performed_by_id: Acting user, None only for unknown-email logins.
        details: Human-readable description.
        project_id: Affected project, if any.
        task_id: Affected task, if any.
        affected_user_id: Affected user, if any.

    Returns:
        The newly created AuditEntry.
    """
    entry = AuditEntry(
        action=action,
        performed_by_id=performed_by_id,
        details=details,
        project_id=project_id,
        task_id=task_id,
        affected_user_id=affected_user_id,
    )
    session.add(entry)
    await session.flush()

    logger.debug("audit_entry_appended", action=action.value, entry_id=entry.id)
    return entry


async def list_audit_entries(
    session: AsyncSession,
    actions: Iterable[AuditAction] | None = None,
    performed_by_id: UUID | None = None,
    project_id: UUID | None = None,
    task_id: UUID | None = None,
    limit: int | None = None,
) -> list[AuditEntry]:
    """List audit entries, newest first with insertion order as tie break.

    Args:
        session: Active async database session.
        actions: Only entries with one of these actions.
        performed_by_id: Only entries performed by this user.
        project_id: Only entries about this project.
        task_id: Only entries about this task.
        limit: Maximum number of entries to return.

    Returns:
        List of matching AuditEntry instances.
    """
    stmt = select(AuditEntry)

    if actions is not None:
        stmt = stmt.where(AuditEntry.action.in_(list(actions)))
    if performed_by_id is not None:
        stmt = stmt.where(AuditEntry.performed_by_id == performed_by_id)
    if project_id is not None:
        stmt = stmt.where(AuditEntry.project_id == project_id)
    if task_id is not None:
        stmt = stmt.where(AuditEntry.task_id == task_id)

    stmt = stmt.order_by(AuditEntry.created_at.desc(), AuditEntry.id.desc())
    if limit is not None:
        stmt = stmt.limit(limit)

    result = await session.execute(stmt)
    return list(result.scalars().all())
