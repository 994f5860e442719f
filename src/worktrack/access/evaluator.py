"""Role and relationship based access evaluation.

evaluate() is a pure function of the principal, the requested action and
the project/task state loaded in the current transaction. It never reads
the database or caches anything. enforce() turns a deny into the right
exception: NotFoundError for a principal with no relationship to the
resource, ForbiddenError with the stable reason otherwise.

Relationships:
    owner     project.manager_id == principal.id
    member    principal.id in project.member_ids
    assignee  task.assigned_to_id == principal.id
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

import structlog

from worktrack.access.principal import Principal
from worktrack.database.models.project import Project
from worktrack.database.models.task import Task
from worktrack.database.models.user import Role
from worktrack.errors import ForbiddenError, NotFoundError

logger = structlog.get_logger(__name__)


class Action(enum.Enum):
    """Everything a principal can ask to do."""

    PROJECT_READ = "project:read"
    PROJECT_CREATE = "project:create"
    PROJECT_UPDATE = "project:update"
    PROJECT_DELETE = "project:delete"
    PROJECT_MANAGE_MEMBERS = "project:manage-members"
    TASK_READ = "task:read"
    TASK_CREATE = "task:create"
    TASK_UPDATE = "task:update"
    TASK_DELETE = "task:delete"
    TASK_ASSIGN = "task:assign"
    TASK_UPDATE_STATUS = "task:update-status"
    TASK_LOG_READ = "task-log:read"
    TASK_LOG_APPEND = "task-log:append"
    USER_MANAGE = "user:manage"


PROJECT_ACTIONS = frozenset(
    {
        Action.PROJECT_READ,
        Action.PROJECT_CREATE,
        Action.PROJECT_UPDATE,
        Action.PROJECT_DELETE,
        Action.PROJECT_MANAGE_MEMBERS,
    }
)

READ_ACTIONS = frozenset({Action.PROJECT_READ, Action.TASK_READ, Action.TASK_LOG_READ})


class DenyReason(str, enum.Enum):
    """Stable, user-displayable deny reasons."""

    NOT_PROJECT_MANAGER = "not project manager"
    NOT_ASSIGNEE = "not assignee"
    NOT_A_MEMBER = "not a member"
    ROLE_NOT_PERMITTED = "role not permitted"


@dataclass(frozen=True)
class Decision:
    """Outcome of an access evaluation.

    Attributes:
        allowed: Whether the action is permitted.
        reason: Deny reason, None when allowed.
        conceal: Whether the resource must be reported as absent.
    """

    allowed: bool
    reason: DenyReason | None = None
    conceal: bool = False

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(allowed=True)


def _deny(reason: DenyReason, related: bool) -> Decision:
    return Decision(allowed=False, reason=reason, conceal=not related)


def _is_owner(principal: Principal, project: Project) -> bool:
    return project.manager_id == principal.id


def _is_member(principal: Principal, project: Project) -> bool:
    return principal.id in project.member_ids


def _is_assignee(principal: Principal, task: Task) -> bool:
    return task.assigned_to_id is not None and task.assigned_to_id == principal.id


def is_related_to_project(principal: Principal, project: Project) -> bool:
    """Admin, owner or member."""
    return (
        principal.role is Role.admin
        or _is_owner(principal, project)
        or _is_member(principal, project)
    )


def is_related_to_task(principal: Principal, task: Task) -> bool:
    """Related to the task's project, or the task's assignee."""
    return is_related_to_project(principal, task.project) or _is_assignee(principal, task)


def _require_project(action: Action, project: Project | None) -> Project:
    if project is None:
        raise ValueError(f"{action.value} requires a project")
    return project


def _require_task(action: Action, task: Task | None) -> Task:
    if task is None:
        raise ValueError(f"{action.value} requires a task")
    return task


def _evaluate_admin(action: Action) -> Decision:
    if action in READ_ACTIONS or action is Action.USER_MANAGE:
        return ALLOW
    return _deny(DenyReason.ROLE_NOT_PERMITTED, related=True)


def _evaluate_manager(
    principal: Principal,
    action: Action,
    project: Project | None,
    task: Task | None,
) -> Decision:
    if action is Action.PROJECT_CREATE:
        return ALLOW
    if action is Action.USER_MANAGE:
        return _deny(DenyReason.ROLE_NOT_PERMITTED, related=True)

    if action in PROJECT_ACTIONS:
        project = _require_project(action, project)
        related = is_related_to_project(principal, project)
        if action is Action.PROJECT_READ:
            return ALLOW if related else _deny(DenyReason.NOT_A_MEMBER, related)
        return (
            ALLOW
            if _is_owner(principal, project)
            else _deny(DenyReason.NOT_PROJECT_MANAGER, related)
        )

    if action is Action.TASK_CREATE:
        project = _require_project(action, project)
        if _is_owner(principal, project):
            return ALLOW
        return _deny(DenyReason.NOT_PROJECT_MANAGER, is_related_to_project(principal, project))

    task = _require_task(action, task)
    owner = _is_owner(principal, task.project)
    assignee = _is_assignee(principal, task)
    related = is_related_to_task(principal, task)

    if action in (Action.TASK_READ, Action.TASK_LOG_READ):
        return ALLOW if related else _deny(DenyReason.NOT_A_MEMBER, related)
    if action in (Action.TASK_UPDATE, Action.TASK_DELETE, Action.TASK_ASSIGN):
        return ALLOW if owner else _deny(DenyReason.NOT_PROJECT_MANAGER, related)
    if action is Action.TASK_UPDATE_STATUS:
        return ALLOW if owner or assignee else _deny(DenyReason.NOT_ASSIGNEE, related)
    if action is Action.TASK_LOG_APPEND:
        return ALLOW if assignee else _deny(DenyReason.NOT_ASSIGNEE, related)
    return _deny(DenyReason.ROLE_NOT_PERMITTED, related)


def _evaluate_member(
    principal: Principal,
    action: Action,
    project: Project | None,
    task: Task | None,
) -> Decision:
    if action in (Action.PROJECT_CREATE, Action.USER_MANAGE):
        return _deny(DenyReason.ROLE_NOT_PERMITTED, related=True)

    if action in PROJECT_ACTIONS:
        project = _require_project(action, project)
        related = is_related_to_project(principal, project)
        if action is Action.PROJECT_READ:
            return ALLOW if related else _deny(DenyReason.NOT_A_MEMBER, related)
        return _deny(DenyReason.ROLE_NOT_PERMITTED, related)

    if action is Action.TASK_CREATE:
        project = _require_project(action, project)
        return _deny(DenyReason.ROLE_NOT_PERMITTED, is_related_to_project(principal, project))

    task = _require_task(action, task)
    assignee = _is_assignee(principal, task)
    related = is_related_to_task(principal, task)

    if action in (
        Action.TASK_READ,
        Action.TASK_LOG_READ,
        Action.TASK_UPDATE_STATUS,
        Action.TASK_LOG_APPEND,
    ):
        return ALLOW if assignee else _deny(DenyReason.NOT_ASSIGNEE, related)
    return _deny(DenyReason.ROLE_NOT_PERMITTED, related)


def evaluate(
    principal: Principal,
    action: Action,
    project: Project | None = None,
    task: Task | None = None,
) -> Decision:
    """Decide whether principal may perform action.

    Project actions other than create, and task create, need project;
    the remaining task and task-log actions need task (with its project
    loaded). Project create and user management take neither.

    Args:
        principal: The caller.
        action: The requested action.
        project: Target project for project actions.
        task: Target task for task and task-log actions.

    Returns:
        ALLOW, or a deny Decision carrying the reason and whether the
        resource has to be concealed.

    Raises:
        ValueError: If the principal's role has no rule set, or the
            target the action needs was not passed.
    """
    if project is None and task is not None:
        project = task.project

    match principal.role:
        case Role.admin:
            return _evaluate_admin(action)
        case Role.manager:
            return _evaluate_manager(principal, action, project, task)
        case Role.member:
            return _evaluate_member(principal, action, project, task)
        case _:
            raise ValueError(f"No access rules for role: {principal.role!r}")


def enforce(
    principal: Principal,
    action: Action,
    project: Project | None = None,
    task: Task | None = None,
) -> None:
    """Raise if principal may not perform action.

    Raises:
        NotFoundError: Denied and the principal is unrelated to the target.
        ForbiddenError: Denied and the principal is related to the target.
    """
    decision = evaluate(principal, action, project=project, task=task)
    if decision.allowed:
        return

    logger.warning(
        "access_denied",
        principal_id=str(principal.id),
        role=principal.role.value,
        action=action.value,
        reason=decision.reason.value if decision.reason else None,
        concealed=decision.conceal,
    )
    if decision.conceal:
        raise NotFoundError("Task" if task is not None else "Project")
    raise ForbiddenError(decision.reason.value if decision.reason else "forbidden")


def can(
    principal: Principal,
    action: Action,
    project: Project | None = None,
    task: Task | None = None,
) -> bool:
    """Boolean shorthand for evaluate()."""
    return evaluate(principal, action, project=project, task=task).allowed
