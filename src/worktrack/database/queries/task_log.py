"""Task progress log query functions for Worktrack.

Entries are only ever inserted and read; there is no update or delete
function other than the cascade performed by task and project deletion.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.database.models.task import TaskStatus
from worktrack.database.models.task_log import TaskLogEntry

logger = structlog.get_logger(__name__)


async def append_log_entry(
    session: AsyncSession,
    task_id: UUID,
    author_id: UUID,
    content: str,
    progress_percent: int | None = None,
    status_at_entry: TaskStatus | None = None,
) -> TaskLogEntry:
    """Append an entry to a task's progress chain.

    Args:
        session: Active async database session.
        task_id: Task the entry belongs to.
        author_id: Assignee writing the entry.
        content: Already-trimmed narrative text.
        progress_percent: Optional progress in [0, 100].
        status_at_entry: Task status recorded with the entry.

    Returns:
        The newly created TaskLogEntry.
    """
    entry = TaskLogEntry(
        task_id=task_id,
        author_id=author_id,
        content=content,
        progress_percent=progress_percent,
        status_at_entry=status_at_entry,
    )
    session.add(entry)
    await session.flush()
    await session.refresh(entry, attribute_names=["author"])

    logger.info("task_log_appended", task_id=str(task_id), entry_id=entry.id)
    return entry


async def list_log_entries(session: AsyncSession, task_id: UUID) -> list[TaskLogEntry]:
    """List a task's progress chain, oldest first in append order."""
    stmt = (
        select(TaskLogEntry)
        .where(TaskLogEntry.task_id == task_id)
        .order_by(TaskLogEntry.created_at.asc(), TaskLogEntry.id.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
