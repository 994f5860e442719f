"""Integration tests for project use cases."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from worktrack.access.principal import Principal
from worktrack.database.models.audit import AuditAction
from worktrack.database.models.base import Base
from worktrack.database.models.notification import NotificationType
from worktrack.database.models.project import ProjectStatus
from worktrack.database.models.user import Role, User
from worktrack.database.queries import audit as audit_queries
from worktrack.database.queries import notification as notification_queries
from worktrack.database.queries import project as project_queries
from worktrack.database.queries import user as user_queries
from worktrack.errors import ConflictError, ForbiddenError, InvalidPayloadError, NotFoundError
from worktrack.services import projects
from worktrack.services import tasks as task_service
from worktrack.services.auth import hash_password
from worktrack.services.transaction import atomic


async def _inbox(factory: async_sessionmaker[AsyncSession], user: User) -> list:
    async with factory() as session:
        return await notification_queries.list_notifications(session, recipient_id=user.id)


class TestCreateProject:
    """Project creation by managers."""

    async def test_create_with_members(self, call, session_factory, admin, manager, member) -> None:
        project = await call(
            projects.create_project,
            Principal.from_user(manager),
            name="  Website  ",
            description="Public site",
            member_ids=[member.id],
        )

        assert project.name == "Website"
        assert project.manager_id == manager.id
        assert project.member_ids == {member.id}
        assert project.status is ProjectStatus.active
        assert project.version == 1

        async with session_factory() as session:
            entries = await audit_queries.list_audit_entries(session, project_id=project.id)
        assert [e.action for e in entries] == [AuditAction.PROJECT_CREATED]
        assert entries[0].performed_by_id == manager.id

        member_inbox = await _inbox(session_factory, member)
        assert [n.type for n in member_inbox] == [NotificationType.project_member_added]
        assert member_inbox[0].message == "You have been added to project: Website"

        admin_inbox = await _inbox(session_factory, admin)
        assert [n.type for n in admin_inbox] == [NotificationType.project_created]

    async def test_member_cannot_create(self, call, member) -> None:
        with pytest.raises(ForbiddenError):
            await call(projects.create_project, Principal.from_user(member), name="Nope")

    async def test_manager_cannot_be_member(self, call, manager) -> None:
        with pytest.raises(InvalidPayloadError) as exc_info:
            await call(
                projects.create_project,
                Principal.from_user(manager),
                name="Website",
                member_ids=[manager.id],
            )
        assert exc_info.value.field == "members"

    async def test_unknown_member_rejected(self, call, manager) -> None:
        with pytest.raises(InvalidPayloadError, match="invalid"):
            await call(
                projects.create_project,
                Principal.from_user(manager),
                name="Website",
                member_ids=[uuid.uuid4()],
            )

    async def test_owner_must_be_manager(self, call, manager, member) -> None:
        with pytest.raises(InvalidPayloadError) as exc_info:
            await call(
                projects.create_project,
                Principal.from_user(manager),
                name="Website",
                manager_id=member.id,
            )
        assert exc_info.value.field == "manager_id"


class TestProjectVisibility:
    """Listing and reading projects by role."""

    async def test_list_scoped_by_role(
        self, call, admin, manager, other_manager, member, other_member
    ) -> None:
        mine = await call(
            projects.create_project, Principal.from_user(manager), name="Mine", member_ids=[member.id]
        )
        theirs = await call(
            projects.create_project, Principal.from_user(other_manager), name="Theirs"
        )

        admin_ids = {p.id for p in await call(projects.list_projects, Principal.from_user(admin))}
        manager_ids = {p.id for p in await call(projects.list_projects, Principal.from_user(manager))}
        member_ids = {p.id for p in await call(projects.list_projects, Principal.from_user(member))}
        outsider_ids = {
            p.id for p in await call(projects.list_projects, Principal.from_user(other_member))
        }

        assert admin_ids == {mine.id, theirs.id}
        assert manager_ids == {mine.id}
        assert member_ids == {mine.id}
        assert outsider_ids == set()

    async def test_unrelated_read_is_not_found(self, call, manager, other_manager) -> None:
        project = await call(projects.create_project, Principal.from_user(manager), name="Mine")

        with pytest.raises(NotFoundError, match="Project not found"):
            await call(projects.get_project, Principal.from_user(other_manager), project.id)


class TestProjectMutation:
    """Update, membership and delete."""

    async def test_update_bumps_version(self, call, manager) -> None:
        project = await call(projects.create_project, Principal.from_user(manager), name="Mine")

        updated = await call(
            projects.update_project,
            Principal.from_user(manager),
            project.id,
            status=ProjectStatus.on_hold,
        )
        assert updated.status is ProjectStatus.on_hold
        assert updated.version == project.version + 1

    async def test_member_update_is_forbidden(self, call, manager, member) -> None:
        project = await call(
            projects.create_project, Principal.from_user(manager), name="Mine", member_ids=[member.id]
        )

        with pytest.raises(ForbiddenError) as exc_info:
            await call(projects.update_project, Principal.from_user(member), project.id, name="X")
        assert exc_info.value.reason == "role not permitted"

    async def test_add_and_remove_member(self, call, session_factory, manager, member) -> None:
        principal = Principal.from_user(manager)
        project = await call(projects.create_project, principal, name="Mine")

        project = await call(projects.add_member, principal, project.id, member.id)
        assert project.member_ids == {member.id}

        with pytest.raises(InvalidPayloadError, match="already a member"):
            await call(projects.add_member, principal, project.id, member.id)

        project = await call(projects.remove_member, principal, project.id, member.id)
        assert project.member_ids == frozenset()

        with pytest.raises(InvalidPayloadError, match="not a member"):
            await call(projects.remove_member, principal, project.id, member.id)

        types = [n.type for n in await _inbox(session_factory, member)]
        assert types == [NotificationType.member_removed, NotificationType.member_added]

    async def test_delete_removes_tasks_and_keeps_history(
        self, call, session_factory, manager, member
    ) -> None:
        principal = Principal.from_user(manager)
        project = await call(
            projects.create_project, principal, name="Doomed", member_ids=[member.id]
        )
        created = await call(
            task_service.create_tasks,
            principal,
            project.id,
            title="Work",
            assignee_ids=[member.id],
        )

        await call(projects.delete_project, principal, project.id)

        with pytest.raises(NotFoundError):
            await call(projects.get_project, principal, project.id)
        with pytest.raises(NotFoundError):
            await call(task_service.get_task, principal, created[0].id)

        async with session_factory() as session:
            entries = await audit_queries.list_audit_entries(session, project_id=project.id)
        assert [e.action for e in entries] == [
            AuditAction.PROJECT_DELETED,
            AuditAction.TASK_CREATED,
            AuditAction.PROJECT_CREATED,
        ]

        member_types = [n.type for n in await _inbox(session_factory, member)]
        assert NotificationType.project_deleted in member_types
        assert NotificationType.task_assigned in member_types

    async def test_other_manager_cannot_delete(self, call, manager, other_manager) -> None:
        project = await call(projects.create_project, Principal.from_user(manager), name="Mine")

        with pytest.raises(NotFoundError):
            await call(projects.delete_project, Principal.from_user(other_manager), project.id)


@pytest.fixture
async def file_session_factory(tmp_path):
    """Session factory over a SQLite file, so two sessions hold separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'worktrack.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


class TestConcurrentUpdates:
    """Optimistic version checks across overlapping transactions."""

    async def test_stale_update_raises_conflict(self, file_session_factory) -> None:
        async with file_session_factory() as session, session.begin():
            owner = await user_queries.create_user(
                session,
                name="Mona Manager",
                email="mona@example.com",
                password_hash=hash_password("secret123", rounds=4),
                role=Role.manager,
            )
        async with file_session_factory() as session:
            project = await projects.create_project(
                session, Principal.from_user(owner), name="Website"
            )

        async with file_session_factory() as first, file_session_factory() as second:
            with pytest.raises(ConflictError):
                async with atomic(first):
                    stale = await project_queries.get_project(first, project.id)
                    async with atomic(second):
                        fresh = await project_queries.get_project(second, project.id)
                        await project_queries.update_project(second, fresh, name="Renamed")
                    await project_queries.update_project(first, stale, name="Overwritten")

        async with file_session_factory() as session:
            current = await project_queries.get_project(session, project.id)
        assert current.name == "Renamed"
        assert current.version == 2
