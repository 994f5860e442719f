"""Notification fanout engine.

Every state change is described by a FanoutEvent. plan_deliveries() is
the pure part of the engine: it applies the recipient rule of the event's
family, then the admin broadcast as one final step, and returns at most
one Delivery per recipient (the first rule that selects a recipient
decides its notification type). emit() loads the admin ids and inserts
the planned rows in the caller's transaction.

Due-soon alerts are different: they are generated on read, deduplicated
through a unique index, and neither audited nor broadcast to admins.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.access.principal import Principal
from worktrack.database.models.audit import AuditAction
from worktrack.database.models.base import utcnow
from worktrack.database.models.notification import Notification, NotificationType
from worktrack.database.models.project import Project
from worktrack.database.models.task import Task
from worktrack.database.models.user import User
from worktrack.database.queries import notification as notification_queries
from worktrack.database.queries import user as user_queries

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FanoutEvent:
    """A committed-in-transaction state change.

    Attributes:
        action: What happened; doubles as the event family.
        actor_id: User who performed the change.
        actor_name: Display name of the actor.
        project_id: Affected project, if any.
        project_name: Name of the affected project.
        manager_id: Owning manager of the affected project.
        member_ids: Project members relevant to the event.
        task_id: Affected task, if any.
        task_title: Title of the affected task.
        assignee_id: Assignee of the affected task.
        affected_user_id: User added, removed, created or updated.
        affected_user_name: Display name of the affected user.
        detail: Extra message context, e.g. the new status.
    """

    action: AuditAction
    actor_id: UUID
    actor_name: str = ""
    project_id: UUID | None = None
    project_name: str = ""
    manager_id: UUID | None = None
    member_ids: frozenset[UUID] = field(default_factory=frozenset)
    task_id: UUID | None = None
    task_title: str = ""
    assignee_id: UUID | None = None
    affected_user_id: UUID | None = None
    affected_user_name: str = ""
    detail: str = ""

    @classmethod
    def for_project(
        cls,
        action: AuditAction,
        actor: Principal,
        project: Project,
        members: Iterable[UUID] | None = None,
        affected_user: User | None = None,
    ) -> FanoutEvent:
        return cls(
            action=action,
            actor_id=actor.id,
            actor_name=actor.name,
            project_id=project.id,
            project_name=project.name,
            manager_id=project.manager_id,
            member_ids=frozenset(project.member_ids if members is None else members),
            affected_user_id=affected_user.id if affected_user else None,
            affected_user_name=affected_user.name if affected_user else "",
        )

    @classmethod
    def for_task(
        cls,
        action: AuditAction,
        actor: Principal,
        task: Task,
        detail: str = "",
    ) -> FanoutEvent:
        return cls(
            action=action,
            actor_id=actor.id,
            actor_name=actor.name,
            project_id=task.project_id,
            project_name=task.project.name,
            manager_id=task.project.manager_id,
            task_id=task.id,
            task_title=task.title,
            assignee_id=task.assigned_to_id,
            affected_user_id=task.assigned_to_id,
            affected_user_name=task.assignee.name if task.assignee else "",
            detail=detail,
        )

    @classmethod
    def for_user(cls, action: AuditAction, actor: Principal, user: User) -> FanoutEvent:
        return cls(
            action=action,
            actor_id=actor.id,
            actor_name=actor.name,
            affected_user_id=user.id,
            affected_user_name=user.name,
            detail=user.role.value,
        )


@dataclass(frozen=True)
class Delivery:
    """One planned notification."""

    recipient_id: UUID
    type: NotificationType
    message: str


ADMIN_BROADCAST_TYPES: dict[AuditAction, NotificationType] = {
    AuditAction.TASK_CREATED: NotificationType.task_created,
    AuditAction.TASK_ASSIGNED: NotificationType.task_assigned,
    AuditAction.TASK_UPDATED: NotificationType.task_updated,
    AuditAction.TASK_DELETED: NotificationType.task_deleted,
    AuditAction.TASK_STATUS_CHANGED: NotificationType.status_changed,
    AuditAction.TASK_LOG_ADDED: NotificationType.task_log_added,
    AuditAction.PROJECT_CREATED: NotificationType.project_created,
    AuditAction.PROJECT_UPDATED: NotificationType.project_updated,
    AuditAction.PROJECT_DELETED: NotificationType.project_deleted,
    AuditAction.MEMBER_ADDED: NotificationType.member_added,
    AuditAction.MEMBER_REMOVED: NotificationType.member_removed,
    AuditAction.USER_CREATED: NotificationType.user_created,
    AuditAction.USER_UPDATED: NotificationType.user_updated,
    AuditAction.USER_DEACTIVATED: NotificationType.user_updated,
}


class _Plan:
    """Ordered recipient list where the first selection wins."""

    def __init__(self) -> None:
        self.deliveries: list[Delivery] = []
        self._seen: set[UUID] = set()

    def add(self, recipient_id: UUID | None, type_: NotificationType, message: str) -> None:
        if recipient_id is None or recipient_id in self._seen:
            return
        self._seen.add(recipient_id)
        self.deliveries.append(Delivery(recipient_id, type_, message))

    def add_unless_actor(
        self,
        event: FanoutEvent,
        recipient_id: UUID | None,
        type_: NotificationType,
        message: str,
    ) -> None:
        if recipient_id != event.actor_id:
            self.add(recipient_id, type_, message)


def _task_rules(plan: _Plan, event: FanoutEvent) -> None:
    title = event.task_title
    match event.action:
        case AuditAction.TASK_CREATED if event.assignee_id is None:
            plan.add_unless_actor(
                event,
                event.manager_id,
                NotificationType.task_created,
                f'New task created in project "{event.project_name}": {title}',
            )
            plan.add(event.actor_id, NotificationType.task_created, f"Task created: {title}")
        case AuditAction.TASK_CREATED:
            plan.add(
                event.assignee_id,
                NotificationType.task_assigned,
                f"You have been assigned a new task: {title}",
            )
            plan.add(
                event.actor_id,
                NotificationType.task_created,
                f"Task created: {title} (assigned to {event.affected_user_name})",
            )
        case AuditAction.TASK_ASSIGNED:
            plan.add(
                event.assignee_id,
                NotificationType.task_assigned,
                f"You have been assigned to task: {title}",
            )
            plan.add(
                event.actor_id,
                NotificationType.task_assigned,
                f'Task "{title}" assigned to {event.affected_user_name}',
            )
        case AuditAction.TASK_UPDATED:
            message = f'Task "{title}" was updated'
            plan.add_unless_actor(event, event.manager_id, NotificationType.task_updated, message)
            plan.add_unless_actor(event, event.assignee_id, NotificationType.task_updated, message)
        case AuditAction.TASK_DELETED:
            message = f'Task "{title}" was deleted'
            plan.add_unless_actor(event, event.manager_id, NotificationType.task_deleted, message)
            plan.add_unless_actor(event, event.assignee_id, NotificationType.task_deleted, message)
        case AuditAction.TASK_STATUS_CHANGED:
            plan.add_unless_actor(
                event,
                event.manager_id,
                NotificationType.status_changed,
                f'{event.actor_name} changed status of task "{title}" to {event.detail}',
            )
        case AuditAction.TASK_LOG_ADDED:
            plan.add_unless_actor(
                event,
                event.manager_id,
                NotificationType.task_log_added,
                f'{event.actor_name} added a progress update on task "{title}"',
            )


def _project_rules(plan: _Plan, event: FanoutEvent) -> None:
    name = event.project_name
    match event.action:
        case AuditAction.PROJECT_CREATED:
            plan.add_unless_actor(
                event,
                event.manager_id,
                NotificationType.project_assigned,
                f"You have been assigned as manager of project: {name}",
            )
            for member_id in sorted(event.member_ids):
                plan.add(
                    member_id,
                    NotificationType.project_member_added,
                    f"You have been added to project: {name}",
                )
        case AuditAction.PROJECT_UPDATED | AuditAction.PROJECT_DELETED:
            if event.action is AuditAction.PROJECT_UPDATED:
                type_, message = NotificationType.project_updated, f'Project "{name}" was updated'
            else:
                type_, message = NotificationType.project_deleted, f'Project "{name}" was deleted'
            plan.add_unless_actor(event, event.manager_id, type_, message)
            for member_id in sorted(event.member_ids):
                plan.add_unless_actor(event, member_id, type_, message)
        case AuditAction.MEMBER_ADDED:
            plan.add(
                event.affected_user_id,
                NotificationType.member_added,
                f"You have been added to project: {name}",
            )
            plan.add_unless_actor(
                event,
                event.manager_id,
                NotificationType.member_added,
                f'{event.affected_user_name} was added to project "{name}"',
            )
        case AuditAction.MEMBER_REMOVED:
            plan.add(
                event.affected_user_id,
                NotificationType.member_removed,
                f"You have been removed from project: {name}",
            )
            plan.add_unless_actor(
                event,
                event.manager_id,
                NotificationType.member_removed,
                f'{event.affected_user_name} was removed from project "{name}"',
            )


def admin_message(event: FanoutEvent) -> str:
    """Message used for the admin broadcast copy of an event."""
    actor = event.actor_name or "Someone"
    match event.action:
        case AuditAction.TASK_CREATED:
            return f'{actor} created task "{event.task_title}" in project "{event.project_name}"'
        case AuditAction.TASK_ASSIGNED:
            return f'Task "{event.task_title}" assigned to {event.affected_user_name}'
        case AuditAction.TASK_UPDATED:
            return f'Task "{event.task_title}" was updated'
        case AuditAction.TASK_DELETED:
            return f'Task "{event.task_title}" was deleted'
        case AuditAction.TASK_STATUS_CHANGED:
            return f'{actor} changed status of task "{event.task_title}" to {event.detail}'
        case AuditAction.TASK_LOG_ADDED:
            return f'{actor} added a progress update on task "{event.task_title}"'
        case AuditAction.PROJECT_CREATED:
            return f'Project "{event.project_name}" was created by {actor}'
        case AuditAction.PROJECT_UPDATED:
            return f'Project "{event.project_name}" was updated'
        case AuditAction.PROJECT_DELETED:
            return f'Project "{event.project_name}" was deleted'
        case AuditAction.MEMBER_ADDED:
            return f'{event.affected_user_name} was added to project "{event.project_name}"'
        case AuditAction.MEMBER_REMOVED:
            return f'{event.affected_user_name} was removed from project "{event.project_name}"'
        case AuditAction.USER_CREATED:
            return f"New user created: {event.affected_user_name} ({event.detail})"
        case AuditAction.USER_DEACTIVATED:
            return f"User {event.affected_user_name} was deactivated"
        case AuditAction.USER_UPDATED:
            return f"User {event.affected_user_name} was activated"
    return f"{event.action.value} by {actor}"


def plan_deliveries(event: FanoutEvent, admin_ids: Sequence[UUID]) -> list[Delivery]:
    """Compute the notifications for one event.

    Args:
        event: The state change.
        admin_ids: Every admin account, the acting admin included.

    Returns:
        Deliveries in rule order, at most one per recipient. Events outside
        every family (logins) produce none.
    """
    admin_type = ADMIN_BROADCAST_TYPES.get(event.action)
    if admin_type is None:
        return []

    plan = _Plan()
    if event.task_id is not None:
        _task_rules(plan, event)
    elif event.project_id is not None:
        _project_rules(plan, event)

    # Admin broadcast, applied once for every family.
    message = admin_message(event)
    for admin_id in admin_ids:
        plan.add(admin_id, admin_type, message)

    return plan.deliveries


async def emit(session: AsyncSession, event: FanoutEvent) -> list[Notification]:
    """Insert the notifications of an event in the caller's transaction."""
    admin_ids = await user_queries.list_admin_ids(session)
    deliveries = plan_deliveries(event, admin_ids)
    if not deliveries:
        return []

    rows = [
        {
            "recipient_id": delivery.recipient_id,
            "message": delivery.message,
            "type": delivery.type,
            "task_id": event.task_id,
            "project_id": event.project_id,
        }
        for delivery in deliveries
    ]
    notifications = await notification_queries.insert_notifications(session, rows)
    admins = set(admin_ids)

    logger.info(
        "notifications_emitted",
        action=event.action.value,
        recipients=len(notifications),
        admin_copies=sum(1 for d in deliveries if d.recipient_id in admins),
    )
    return notifications


def due_soon_key(now: datetime) -> str:
    """Day bucket used as the dedupe key of due-soon alerts."""
    return f"due_soon:{now:%Y-%m-%d}"


def is_due_soon(task: Task, now: datetime, window: timedelta) -> bool:
    """Whether the task's deadline falls in [now, now + window]."""
    return task.deadline is not None and now <= task.deadline <= now + window


async def generate_due_soon(
    session: AsyncSession,
    principal: Principal,
    tasks: Iterable[Task],
    window: timedelta,
    now: datetime | None = None,
) -> int:
    """Create due-soon alerts for the principal's tasks that are about to fall due.

    At most one alert exists per (recipient, task) within any rolling
    window, and concurrent callers cannot create two for the same day.

    Args:
        session: Session inside the caller's transaction.
        principal: The caller listing tasks.
        tasks: Tasks just listed for the caller.
        window: How far ahead a deadline counts as due soon.
        now: Reference time, defaults to the current UTC time.

    Returns:
        Number of alerts created.
    """
    now = now or utcnow()
    hours = int(window.total_seconds() // 3600)
    created = 0

    for task in tasks:
        if task.assigned_to_id != principal.id or not is_due_soon(task, now, window):
            continue
        if await notification_queries.has_recent_notification(
            session,
            recipient_id=principal.id,
            task_id=task.id,
            notification_type=NotificationType.due_soon,
            since=now - window,
        ):
            continue

        inserted = await notification_queries.insert_notification_if_absent(
            session,
            recipient_id=principal.id,
            message=f'Task "{task.title}" is due in less than {hours} hours',
            notification_type=NotificationType.due_soon,
            dedupe_key=due_soon_key(now),
            task_id=task.id,
            project_id=task.project_id,
        )
        if inserted:
            created += 1
            logger.info("due_soon_emitted", task_id=str(task.id), recipient_id=str(principal.id))

    return created
