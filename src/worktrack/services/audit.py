"""Audit trail recording and the login activity view.

record() is called by every mutating service inside its transaction, so
an audit entry exists exactly when the mutation it describes committed.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.access.principal import Principal
from worktrack.config import AuditConfig
from worktrack.database.models.audit import LOGIN_ACTIONS, AuditAction, AuditEntry
from worktrack.database.queries import audit as audit_queries
from worktrack.services.transaction import atomic

logger = structlog.get_logger(__name__)


async def record(
    session: AsyncSession,
    action: AuditAction,
    actor_id: UUID | None,
    details: str = "",
    project_id: UUID | None = None,
    task_id: UUID | None = None,
    affected_user_id: UUID | None = None,
) -> AuditEntry:
    """Append an audit entry in the caller's transaction."""
    entry = await audit_queries.append_audit_entry(
        session,
        action=action,
        performed_by_id=actor_id,
        details=details,
        project_id=project_id,
        task_id=task_id,
        affected_user_id=affected_user_id,
    )
    logger.info(
        "audit_recorded",
        action=action.value,
        actor_id=str(actor_id) if actor_id else None,
        project_id=str(project_id) if project_id else None,
        task_id=str(task_id) if task_id else None,
    )
    return entry


def resolve_limit(requested: int | None, default: int, maximum: int) -> int:
    """Apply the default to a missing limit and cap it at maximum."""
    if requested is None:
        return default
    return max(1, min(requested, maximum))


async def list_login_activity(
    session: AsyncSession,
    principal: Principal,
    config: AuditConfig,
    limit: int | None = None,
) -> list[AuditEntry]:
    """List login successes and failures, newest first.

    Admins see every entry; everyone else sees only their own.

    Args:
        session: Fresh session with no transaction in progress.
        principal: The caller.
        config: Audit configuration providing limit defaults.
        limit: Requested page size.

    Returns:
        List of AuditEntry rows with a login action.
    """
    page_size = resolve_limit(limit, config.activity_default_limit, config.activity_max_limit)
    async with atomic(session):
        return await audit_queries.list_audit_entries(
            session,
            actions=LOGIN_ACTIONS,
            performed_by_id=None if principal.is_admin else principal.id,
            limit=page_size,
        )
