"""Task progress log chain.

Only the assignee appends; anyone who can read the task can read the
chain. An entry that carries a status moves the task to that status and
is reported exactly like a plain status change.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.access.evaluator import Action, enforce
from worktrack.access.principal import Principal
from worktrack.database.models.audit import AuditAction
from worktrack.database.models.task import TaskStatus
from worktrack.database.models.task_log import TaskLogEntry
from worktrack.database.queries import task as task_queries
from worktrack.database.queries import task_log as task_log_queries
from worktrack.errors import InvalidPayloadError
from worktrack.services import audit
from worktrack.services.fanout import FanoutEvent, emit
from worktrack.services.tasks import load_task, record_status_change
from worktrack.services.transaction import atomic

logger = structlog.get_logger(__name__)


def validate_entry(content: str, progress_percent: int | None) -> str:
    """Return the trimmed content, raising on an invalid entry."""
    trimmed = content.strip()
    if not trimmed:
        raise InvalidPayloadError("content", "Log content must not be blank")
    if progress_percent is not None and not 0 <= progress_percent <= 100:
        raise InvalidPayloadError("progress_percent", "Progress must be between 0 and 100")
    return trimmed


async def append_entry(
    session: AsyncSession,
    principal: Principal,
    task_id: UUID,
    content: str,
    progress_percent: int | None = None,
    status: TaskStatus | None = None,
) -> TaskLogEntry:
    """Append a progress entry to a task assigned to the caller.

    Args:
        session: Fresh session.
        principal: The caller; must be the task's assignee.
        task_id: Target task.
        content: Narrative text, trimmed before storage.
        progress_percent: Optional progress in [0, 100].
        status: Optional new task status.

    Returns:
        The appended entry. Identical repeated appends create distinct
        entries.

    Raises:
        NotFoundError: If the task is absent or hidden from the caller.
        ForbiddenError: If the caller is related to the task but is not
            its assignee.
        InvalidPayloadError: If content or progress is invalid.
    """
    trimmed = validate_entry(content, progress_percent)

    async with atomic(session):
        task = await load_task(session, task_id, for_update=True)
        enforce(principal, Action.TASK_LOG_APPEND, task=task)

        previous = task.status
        if status is not None and status is not previous:
            task = await task_queries.update_task(session, task, status=status)

        entry = await task_log_queries.append_log_entry(
            session,
            task_id=task.id,
            author_id=principal.id,
            content=trimmed,
            progress_percent=progress_percent,
            status_at_entry=task.status,
        )
        await audit.record(
            session,
            AuditAction.TASK_LOG_ADDED,
            principal.id,
            details=f'Added progress update on task "{task.title}"',
            project_id=task.project_id,
            task_id=task.id,
            affected_user_id=principal.id,
        )
        await emit(session, FanoutEvent.for_task(AuditAction.TASK_LOG_ADDED, principal, task))

        if task.status is not previous:
            await record_status_change(session, principal, task, previous)

    return entry


async def list_entries(
    session: AsyncSession,
    principal: Principal,
    task_id: UUID,
) -> list[TaskLogEntry]:
    """Return a task's chain oldest first; an empty chain is an empty list."""
    async with atomic(session):
        task = await load_task(session, task_id)
        enforce(principal, Action.TASK_LOG_READ, task=task)
        return await task_log_queries.list_log_entries(session, task.id)
