"""Task use cases.

Tasks inherit visibility from their project. Creation accepts several
assignees and creates one task per assignee, each audited and fanned out
on its own. Listing also drives due-soon alert generation for the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.access.evaluator import Action, enforce
from worktrack.access.principal import Principal
from worktrack.config import NotificationConfig
from worktrack.database.models.audit import AuditAction
from worktrack.database.models.project import Project
from worktrack.database.models.task import Task, TaskPriority, TaskStatus
from worktrack.database.models.user import Role
from worktrack.database.queries import project as project_queries
from worktrack.database.queries import task as task_queries
from worktrack.errors import InvalidPayloadError, NotFoundError
from worktrack.services import audit
from worktrack.services.fanout import FanoutEvent, emit, generate_due_soon
from worktrack.services.transaction import atomic

logger = structlog.get_logger(__name__)

_UNSET = object()


async def load_task(session: AsyncSession, task_id: UUID, for_update: bool = False) -> Task:
    """Load a task or raise NotFoundError."""
    task = await task_queries.get_task(session, task_id, for_update=for_update)
    if task is None:
        raise NotFoundError("Task")
    return task


def _check_assignee(project: Project, assignee_id: UUID) -> None:
    if assignee_id not in project.member_ids:
        raise InvalidPayloadError("assigned_to", "Assignee must be a member of the project")


async def record_status_change(
    session: AsyncSession,
    principal: Principal,
    task: Task,
    previous: TaskStatus,
) -> None:
    """Audit and fan out a status transition; shared by the patch and the log append."""
    await audit.record(
        session,
        AuditAction.TASK_STATUS_CHANGED,
        principal.id,
        details=f'Status of task "{task.title}" changed from {previous.value} to {task.status.value}',
        project_id=task.project_id,
        task_id=task.id,
        affected_user_id=task.assigned_to_id,
    )
    await emit(
        session,
        FanoutEvent.for_task(
            AuditAction.TASK_STATUS_CHANGED, principal, task, detail=task.status.value
        ),
    )


async def list_tasks(
    session: AsyncSession,
    principal: Principal,
    config: NotificationConfig,
    project_id: UUID | None = None,
    status: TaskStatus | None = None,
) -> list[Task]:
    """List the tasks visible to the caller, newest first.

    Admins see every task, managers the tasks of projects they own or
    belong to (plus tasks assigned to them), members only their assigned
    tasks. Listing creates due-soon alerts for the caller's tasks whose
    deadline is within the configured window.
    """
    async with atomic(session):
        match principal.role:
            case Role.admin:
                tasks = await task_queries.list_tasks(
                    session, project_id=project_id, status_filter=status
                )
            case Role.manager:
                projects = await project_queries.list_projects(
                    session, manager_id=principal.id, member_id=principal.id
                )
                tasks = await task_queries.list_tasks(
                    session,
                    project_ids=[project.id for project in projects],
                    assigned_to_id=principal.id,
                    project_id=project_id,
                    status_filter=status,
                )
            case Role.member:
                tasks = await task_queries.list_tasks(
                    session,
                    assigned_to_id=principal.id,
                    project_id=project_id,
                    status_filter=status,
                )
            case _:
                raise ValueError(f"No task scope for role: {principal.role!r}")

        alerts = await generate_due_soon(
            session,
            principal,
            tasks,
            window=timedelta(hours=config.due_soon_window_hours),
        )

    logger.info("tasks_listed", count=len(tasks), due_soon_created=alerts)
    return tasks


async def get_task(session: AsyncSession, principal: Principal, task_id: UUID) -> Task:
    """Fetch one task the caller may read."""
    async with atomic(session):
        task = await load_task(session, task_id)
        enforce(principal, Action.TASK_READ, task=task)
    return task


async def create_tasks(
    session: AsyncSession,
    principal: Principal,
    project_id: UUID,
    title: str,
    assignee_ids: Sequence[UUID] = (),
    description: str | None = None,
    status: TaskStatus = TaskStatus.pending,
    priority: TaskPriority = TaskPriority.medium,
    deadline: datetime | None = None,
) -> list[Task]:
    """Create one task per assignee, or a single unassigned task.

    Args:
        session: Fresh session.
        principal: The caller; must own the project.
        project_id: Parent project.
        title: Task title.
        assignee_ids: Zero or more assignees, each a project member.
        description: Optional details.
        status: Initial status.
        priority: Priority level.
        deadline: Optional due timestamp.

    Returns:
        The created tasks, in assignee order.

    Raises:
        NotFoundError: If the project is absent or hidden from the caller.
        ForbiddenError: If the caller does not own the project.
        InvalidPayloadError: If the title is blank or an assignee is not a
            project member.
    """
    title = title.strip()
    if not title:
        raise InvalidPayloadError("title", "Task title must not be blank")

    async with atomic(session):
        project = await project_queries.get_project(session, project_id, for_update=True)
        if project is None:
            raise NotFoundError("Project")
        enforce(principal, Action.TASK_CREATE, project=project)

        targets: list[UUID | None] = list(dict.fromkeys(assignee_ids)) or [None]
        for assignee_id in targets:
            if assignee_id is not None:
                _check_assignee(project, assignee_id)

        created: list[Task] = []
        for assignee_id in targets:
            task = await task_queries.create_task(
                session,
                project=project,
                title=title,
                created_by_id=principal.id,
                assigned_to_id=assignee_id,
                description=description,
                status=status,
                priority=priority,
                deadline=deadline,
            )
            await audit.record(
                session,
                AuditAction.TASK_CREATED,
                principal.id,
                details=f'Created task "{task.title}" in project "{project.name}"',
                project_id=project.id,
                task_id=task.id,
                affected_user_id=assignee_id,
            )
            await emit(session, FanoutEvent.for_task(AuditAction.TASK_CREATED, principal, task))
            created.append(task)

    return created


async def update_task(
    session: AsyncSession,
    principal: Principal,
    task_id: UUID,
    title: str | None = None,
    description: str | None = None,
    priority: TaskPriority | None = None,
    deadline: datetime | None | object = _UNSET,
) -> Task:
    """Edit the details of a task in an owned project.

    Pass deadline=None to clear the deadline; leave it out to keep it.
    """
    updates: dict[str, object] = {}
    if title is not None:
        if not title.strip():
            raise InvalidPayloadError("title", "Task title must not be blank")
        updates["title"] = title.strip()
    if description is not None:
        updates["description"] = description
    if priority is not None:
        updates["priority"] = priority
    if deadline is not _UNSET:
        updates["deadline"] = deadline

    async with atomic(session):
        task = await load_task(session, task_id, for_update=True)
        enforce(principal, Action.TASK_UPDATE, task=task)

        task = await task_queries.update_task(session, task, **updates)
        await audit.record(
            session,
            AuditAction.TASK_UPDATED,
            principal.id,
            details=f'Updated task "{task.title}" ({", ".join(updates) or "no changes"})',
            project_id=task.project_id,
            task_id=task.id,
        )
        await emit(session, FanoutEvent.for_task(AuditAction.TASK_UPDATED, principal, task))

    return task


async def delete_task(session: AsyncSession, principal: Principal, task_id: UUID) -> None:
    """Delete a task in an owned project together with its log chain."""
    async with atomic(session):
        task = await load_task(session, task_id, for_update=True)
        enforce(principal, Action.TASK_DELETE, task=task)

        event = FanoutEvent.for_task(AuditAction.TASK_DELETED, principal, task)
        await task_queries.delete_task(session, task.id)
        await audit.record(
            session,
            AuditAction.TASK_DELETED,
            principal.id,
            details=f'Deleted task "{event.task_title}"',
            project_id=event.project_id,
            task_id=event.task_id,
        )
        await emit(session, event)


async def update_status(
    session: AsyncSession,
    principal: Principal,
    task_id: UUID,
    status: TaskStatus,
) -> Task:
    """Set a task's status without a narrative entry.

    Setting the current status again is accepted and changes nothing.
    """
    async with atomic(session):
        task = await load_task(session, task_id, for_update=True)
        enforce(principal, Action.TASK_UPDATE_STATUS, task=task)

        previous = task.status
        if status is not previous:
            task = await task_queries.update_task(session, task, status=status)
            await record_status_change(session, principal, task, previous)

    return task


async def assign_task(
    session: AsyncSession,
    principal: Principal,
    task_id: UUID,
    assignee_id: UUID,
) -> Task:
    """Assign a task in an owned project to one of the project's members."""
    async with atomic(session):
        task = await load_task(session, task_id, for_update=True)
        enforce(principal, Action.TASK_ASSIGN, task=task)
        _check_assignee(task.project, assignee_id)

        task = await task_queries.update_task(session, task, assigned_to_id=assignee_id)
        await audit.record(
            session,
            AuditAction.TASK_ASSIGNED,
            principal.id,
            details=f'Assigned task "{task.title}" to {task.assignee.name if task.assignee else assignee_id}',
            project_id=task.project_id,
            task_id=task.id,
            affected_user_id=assignee_id,
        )
        await emit(session, FanoutEvent.for_task(AuditAction.TASK_ASSIGNED, principal, task))

    return task
