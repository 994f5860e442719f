"""Project query functions for Worktrack.

Provides async functions for creating, reading, updating and deleting
Project records and their memberships using the SQLAlchemy 2.0 select()
API. Functions flush but never commit; the calling service owns the
transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.database.models.base import utcnow
from worktrack.database.models.project import Project, ProjectStatus, project_members
from worktrack.database.models.task import Task
from worktrack.database.models.task_log import TaskLogEntry
from worktrack.database.models.user import User

logger = structlog.get_logger(__name__)


async def create_project(
    session: AsyncSession,
    name: str,
    manager: User,
    created_by_id: UUID,
    members: Sequence[User] = (),
    description: str | None = None,
    status: ProjectStatus = ProjectStatus.active,
) -> Project:
    """Create a new project.

    Args:
        session: Active async database session.
        name: Human-readable project name.
        manager: Owning manager.
        created_by_id: User creating the project.
        members: Initial members (must not include the manager).
        description: Optional description.
        status: Initial status.

    Returns:
        The newly created Project instance.
    """
    project = Project(
        name=name,
        description=description,
        manager_id=manager.id,
        manager=manager,
        created_by_id=created_by_id,
        members=list(members),
        status=status,
    )
    session.add(project)
    await session.flush()

    logger.info(
        "project_created",
        project_id=str(project.id),
        manager_id=str(manager.id),
        member_count=len(project.members),
    )
    return project


async def get_project(
    session: AsyncSession,
    project_id: UUID,
    for_update: bool = False,
) -> Project | None:
    """Retrieve a project by ID with its current membership.

    The row is always re-read from the database so that authorization sees
    the state as of this transaction.

    Args:
        session: Active async database session.
        project_id: UUID of the project to retrieve.
        for_update: Lock the row for the rest of the transaction.

    Returns:
        The Project instance if found, None otherwise.
    """
    stmt = (
        select(Project)
        .where(Project.id == project_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_projects(
    session: AsyncSession,
    manager_id: UUID | None = None,
    member_id: UUID | None = None,
) -> list[Project]:
    """List projects, newest first.

    With no filter every project is returned. When filters are given a
    project matches if it satisfies any of them.

    Args:
        session: Active async database session.
        manager_id: Match projects owned by this user.
        member_id: Match projects this user is a member of.

    Returns:
        List of matching Project instances.
    """
    stmt = select(Project)

    conditions = []
    if manager_id is not None:
        conditions.append(Project.manager_id == manager_id)
    if member_id is not None:
        member_projects = select(project_members.c.project_id).where(
            project_members.c.user_id == member_id
        )
        conditions.append(Project.id.in_(member_projects))
    if conditions:
        stmt = stmt.where(or_(*conditions))

    stmt = stmt.order_by(Project.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_project(
    session: AsyncSession,
    project: Project,
    **updates: Any,
) -> Project:
    """Apply field updates to a loaded project.

    The version counter is checked and bumped on flush.

    Args:
        session: Active async database session.
        project: Project loaded in this session.
        **updates: Column attribute names and new values.

    Returns:
        The updated Project instance.
    """
    for field, value in updates.items():
        setattr(project, field, value)
    project.updated_at = utcnow()
    await session.flush()

    logger.info(
        "project_updated",
        project_id=str(project.id),
        fields_updated=list(updates.keys()),
        version=project.version,
    )
    return project


async def add_project_member(session: AsyncSession, project: Project, user: User) -> Project:
    """Add a member to a project and bump its version."""
    project.members.append(user)
    project.updated_at = utcnow()
    await session.flush()

    logger.info("project_member_added", project_id=str(project.id), user_id=str(user.id))
    return project


async def remove_project_member(
    session: AsyncSession,
    project: Project,
    user_id: UUID,
) -> bool:
    """Remove a member from a project.

    Returns:
        True if the user was a member, False otherwise.
    """
    remaining = [member for member in project.members if member.id != user_id]
    if len(remaining) == len(project.members):
        return False

    project.members = remaining
    project.updated_at = utcnow()
    await session.flush()

    logger.info("project_member_removed", project_id=str(project.id), user_id=str(user_id))
    return True


async def delete_project(session: AsyncSession, project_id: UUID) -> int:
    """Delete a project together with its tasks and their log chains.

    Audit entries and notifications are left untouched.

    Args:
        session: Active async database session.
        project_id: UUID of the project to delete.

    Returns:
        Number of tasks deleted with the project.
    """
    task_ids = select(Task.id).where(Task.project_id == project_id)
    await session.execute(delete(TaskLogEntry).where(TaskLogEntry.task_id.in_(task_ids)))
    tasks_result = await session.execute(delete(Task).where(Task.project_id == project_id))
    await session.execute(
        delete(project_members).where(project_members.c.project_id == project_id)
    )
    await session.execute(delete(Project).where(Project.id == project_id))

    deleted_tasks = tasks_result.rowcount or 0
    logger.info("project_deleted", project_id=str(project_id), tasks_deleted=deleted_tasks)
    return deleted_tasks
