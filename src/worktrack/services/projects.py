"""Project use cases: authorization, mutation, audit and fanout in one transaction.

Every function takes a fresh session and the calling principal, opens a
single transaction, and re-reads the project inside it so that access
decisions see current ownership and membership.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.access.evaluator import Action, enforce
from worktrack.access.principal import Principal
from worktrack.database.models.audit import AuditAction
from worktrack.database.models.project import Project, ProjectStatus
from worktrack.database.models.user import Role, User
from worktrack.database.queries import project as project_queries
from worktrack.database.queries import user as user_queries
from worktrack.errors import InvalidPayloadError, NotFoundError
from worktrack.services import audit
from worktrack.services.fanout import FanoutEvent, emit
from worktrack.services.transaction import atomic

logger = structlog.get_logger(__name__)


async def _load(session: AsyncSession, project_id: UUID, for_update: bool = False) -> Project:
    project = await project_queries.get_project(session, project_id, for_update=for_update)
    if project is None:
        raise NotFoundError("Project")
    return project


async def _resolve_members(
    session: AsyncSession,
    member_ids: Sequence[UUID],
    manager_id: UUID,
) -> list[User]:
    unique_ids = list(dict.fromkeys(member_ids))
    if manager_id in unique_ids:
        raise InvalidPayloadError("members", "The project manager cannot also be a member")

    users = await user_queries.get_users(session, unique_ids)
    if len(users) != len(unique_ids):
        raise InvalidPayloadError("members", "One or more member IDs are invalid")

    by_id = {user.id: user for user in users}
    return [by_id[user_id] for user_id in unique_ids]


async def list_projects(session: AsyncSession, principal: Principal) -> list[Project]:
    """List the projects visible to the caller, newest first.

    Admins see every project, managers the ones they own or belong to,
    members the ones they belong to.
    """
    async with atomic(session):
        match principal.role:
            case Role.admin:
                projects = await project_queries.list_projects(session)
            case Role.manager:
                projects = await project_queries.list_projects(
                    session, manager_id=principal.id, member_id=principal.id
                )
            case Role.member:
                projects = await project_queries.list_projects(session, member_id=principal.id)
            case _:
                raise ValueError(f"No project scope for role: {principal.role!r}")

    logger.info("projects_listed", count=len(projects))
    return projects


async def get_project(session: AsyncSession, principal: Principal, project_id: UUID) -> Project:
    """Fetch one project the caller may read."""
    async with atomic(session):
        project = await _load(session, project_id)
        enforce(principal, Action.PROJECT_READ, project=project)
    return project


async def create_project(
    session: AsyncSession,
    principal: Principal,
    name: str,
    description: str | None = None,
    manager_id: UUID | None = None,
    member_ids: Sequence[UUID] = (),
    status: ProjectStatus = ProjectStatus.active,
) -> Project:
    """Create a project owned by the caller or by another manager.

    Args:
        session: Fresh session.
        principal: The caller; must be a manager.
        name: Project name.
        description: Optional description.
        manager_id: Owning manager, defaults to the caller.
        member_ids: Initial members.
        status: Initial status.

    Returns:
        The created project.

    Raises:
        ForbiddenError: If the caller's role may not create projects.
        InvalidPayloadError: If the manager or a member is invalid.
    """
    name = name.strip()
    if not name:
        raise InvalidPayloadError("name", "Project name must not be blank")

    async with atomic(session):
        enforce(principal, Action.PROJECT_CREATE)

        manager = await user_queries.get_user(session, manager_id or principal.id)
        if manager is None or manager.role is not Role.manager or not manager.is_active:
            raise InvalidPayloadError("manager_id", "Manager must be an active manager-role user")

        members = await _resolve_members(session, member_ids, manager.id)
        project = await project_queries.create_project(
            session,
            name=name,
            manager=manager,
            created_by_id=principal.id,
            members=members,
            description=description,
            status=status,
        )

        await audit.record(
            session,
            AuditAction.PROJECT_CREATED,
            principal.id,
            details=f'Created project "{project.name}"',
            project_id=project.id,
            affected_user_id=manager.id,
        )
        await emit(session, FanoutEvent.for_project(AuditAction.PROJECT_CREATED, principal, project))

    return project


async def update_project(
    session: AsyncSession,
    principal: Principal,
    project_id: UUID,
    name: str | None = None,
    description: str | None = None,
    status: ProjectStatus | None = None,
) -> Project:
    """Update name, description or status of an owned project."""
    updates: dict[str, object] = {}
    if name is not None:
        if not name.strip():
            raise InvalidPayloadError("name", "Project name must not be blank")
        updates["name"] = name.strip()
    if description is not None:
        updates["description"] = description
    if status is not None:
        updates["status"] = status

    async with atomic(session):
        project = await _load(session, project_id, for_update=True)
        enforce(principal, Action.PROJECT_UPDATE, project=project)

        project = await project_queries.update_project(session, project, **updates)
        await audit.record(
            session,
            AuditAction.PROJECT_UPDATED,
            principal.id,
            details=f'Updated project "{project.name}" ({", ".join(updates) or "no changes"})',
            project_id=project.id,
        )
        await emit(session, FanoutEvent.for_project(AuditAction.PROJECT_UPDATED, principal, project))

    return project


async def delete_project(session: AsyncSession, principal: Principal, project_id: UUID) -> None:
    """Delete an owned project with its tasks; history rows are kept."""
    async with atomic(session):
        project = await _load(session, project_id, for_update=True)
        enforce(principal, Action.PROJECT_DELETE, project=project)

        event = FanoutEvent.for_project(AuditAction.PROJECT_DELETED, principal, project)
        deleted_tasks = await project_queries.delete_project(session, project.id)
        await audit.record(
            session,
            AuditAction.PROJECT_DELETED,
            principal.id,
            details=f'Deleted project "{event.project_name}" and {deleted_tasks} task(s)',
            project_id=event.project_id,
        )
        await emit(session, event)


async def add_member(
    session: AsyncSession,
    principal: Principal,
    project_id: UUID,
    user_id: UUID,
) -> Project:
    """Add a user to an owned project's members.

    Raises:
        InvalidPayloadError: If the user is unknown, is the manager, or is
            already a member.
    """
    async with atomic(session):
        project = await _load(session, project_id, for_update=True)
        enforce(principal, Action.PROJECT_MANAGE_MEMBERS, project=project)

        user = await user_queries.get_user(session, user_id)
        if user is None:
            raise InvalidPayloadError("user_id", "User not found")
        if user.id == project.manager_id:
            raise InvalidPayloadError("user_id", "The project manager cannot also be a member")
        if user.id in project.member_ids:
            raise InvalidPayloadError("user_id", "User is already a member of this project")

        project = await project_queries.add_project_member(session, project, user)
        await audit.record(
            session,
            AuditAction.MEMBER_ADDED,
            principal.id,
            details=f'Added {user.name} to project "{project.name}"',
            project_id=project.id,
            affected_user_id=user.id,
        )
        await emit(
            session,
            FanoutEvent.for_project(
                AuditAction.MEMBER_ADDED, principal, project, affected_user=user
            ),
        )

    return project


async def remove_member(
    session: AsyncSession,
    principal: Principal,
    project_id: UUID,
    user_id: UUID,
) -> Project:
    """Remove a user from an owned project's members.

    Raises:
        InvalidPayloadError: If the user is not a member.
    """
    async with atomic(session):
        project = await _load(session, project_id, for_update=True)
        enforce(principal, Action.PROJECT_MANAGE_MEMBERS, project=project)

        user = next((member for member in project.members if member.id == user_id), None)
        if user is None:
            raise InvalidPayloadError("user_id", "User is not a member of this project")

        await project_queries.remove_project_member(session, project, user.id)
        await audit.record(
            session,
            AuditAction.MEMBER_REMOVED,
            principal.id,
            details=f'Removed {user.name} from project "{project.name}"',
            project_id=project.id,
            affected_user_id=user.id,
        )
        await emit(
            session,
            FanoutEvent.for_project(
                AuditAction.MEMBER_REMOVED, principal, project, affected_user=user
            ),
        )

    return project
