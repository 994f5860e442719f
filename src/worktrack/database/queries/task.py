"""Task query functions for Worktrack.

Provides async functions for creating, reading, updating and deleting Task
records. Functions flush but never commit; the calling service owns the
transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.database.models.base import utcnow
from worktrack.database.models.project import Project
from worktrack.database.models.task import Task, TaskPriority, TaskStatus
from worktrack.database.models.task_log import TaskLogEntry

logger = structlog.get_logger(__name__)


async def create_task(
    session: AsyncSession,
    project: Project,
    title: str,
    created_by_id: UUID,
    assigned_to_id: UUID | None = None,
    description: str | None = None,
    status: TaskStatus = TaskStatus.pending,
    priority: TaskPriority = TaskPriority.medium,
    deadline: datetime | None = None,
) -> Task:
    """Create a new task in a project.

    Args:
        session: Active async database session.
        project: Parent project.
        title: Short task title.
        created_by_id: Manager creating the task.
        assigned_to_id: Optional assignee.
        description: Optional details.
        status: Initial status.
        priority: Priority level.
        deadline: Optional due timestamp.

    Returns:
        The newly created Task instance.
    """
    task = Task(
        project_id=project.id,
        project=project,
        title=title,
        description=description,
        assigned_to_id=assigned_to_id,
        created_by_id=created_by_id,
        status=status,
        priority=priority,
        deadline=deadline,
    )
    session.add(task)
    await session.flush()
    # Load the assignee relationship for the response.
    await session.refresh(task, attribute_names=["assignee"])

    logger.info(
        "task_created",
        task_id=str(task.id),
        project_id=str(project.id),
        assigned_to=str(assigned_to_id) if assigned_to_id else None,
    )
    return task


async def get_task(
    session: AsyncSession,
    task_id: UUID,
    for_update: bool = False,
) -> Task | None:
    """Retrieve a task by ID, re-reading it and its project from the database.

    Args:
        session: Active async database session.
        task_id: UUID of the task to retrieve.
        for_update: Lock the task row for the rest of the transaction.

    Returns:
        The Task instance if found, None otherwise.
    """
    stmt = (
        select(Task)
        .where(Task.id == task_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_tasks(
    session: AsyncSession,
    project_ids: Iterable[UUID] | None = None,
    assigned_to_id: UUID | None = None,
    project_id: UUID | None = None,
    status_filter: TaskStatus | None = None,
) -> list[Task]:
    """List tasks, newest first.

    project_ids and assigned_to_id form the visibility scope: when either
    is given a task matches if it satisfies any of them. project_id and
    status_filter narrow the result further.

    Args:
        session: Active async database session.
        project_ids: Projects whose tasks are visible.
        assigned_to_id: Assignee whose tasks are visible.
        project_id: Only tasks in this project.
        status_filter: Only tasks with this status.

    Returns:
        List of matching Task instances.
    """
    stmt = select(Task)

    scope = []
    if project_ids is not None:
        scope.append(Task.project_id.in_(list(project_ids)))
    if assigned_to_id is not None:
        scope.append(Task.assigned_to_id == assigned_to_id)
    if scope:
        stmt = stmt.where(or_(*scope))

    if project_id is not None:
        stmt = stmt.where(Task.project_id == project_id)
    if status_filter is not None:
        stmt = stmt.where(Task.status == status_filter)

    stmt = stmt.order_by(Task.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_task(session: AsyncSession, task: Task, **updates: Any) -> Task:
    """Apply field updates to a loaded task.

    The version counter is checked and bumped on flush.

    Args:
        session: Active async database session.
        task: Task loaded in this session.
        **updates: Column attribute names and new values.

    Returns:
        The updated Task instance.
    """
    for field, value in updates.items():
        setattr(task, field, value)
    task.updated_at = utcnow()
    await session.flush()
    if "assigned_to_id" in updates:
        await session.refresh(task, attribute_names=["assignee"])

    logger.info(
        "task_updated",
        task_id=str(task.id),
        fields_updated=list(updates.keys()),
        version=task.version,
    )
    return task


async def delete_task(session: AsyncSession, task_id: UUID) -> None:
    """Delete a task and its progress log chain."""
    await session.execute(delete(TaskLogEntry).where(TaskLogEntry.task_id == task_id))
    await session.execute(delete(Task).where(Task.id == task_id))

    logger.info("task_deleted", task_id=str(task_id))
