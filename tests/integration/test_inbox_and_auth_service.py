"""Integration tests for the inbox, users, login and the activity log."""

from __future__ import annotations

import pytest

from worktrack.access.principal import Principal
from worktrack.config import AuditConfig, AuthConfig, NotificationConfig
from worktrack.database.models.audit import AuditAction
from worktrack.database.models.notification import NotificationType
from worktrack.database.models.user import Role
from worktrack.database.queries import audit as audit_queries
from worktrack.database.queries import notification as notification_queries
from worktrack.errors import AuthenticationError, ForbiddenError, InvalidPayloadError, NotFoundError
from worktrack.services import audit, auth, inbox, projects, users
from worktrack.services.auth import decode_token

PASSWORD = "secret123"


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(jwt_secret="integration-test-secret", bcrypt_rounds=4)


class TestInbox:
    """Listing and marking notifications."""

    async def _seed(self, call, manager, member, count: int) -> None:
        principal = Principal.from_user(manager)
        for index in range(count):
            await call(
                projects.create_project,
                principal,
                name=f"Project {index}",
                member_ids=[member.id],
            )

    async def test_newest_first_with_unread_count(self, call, manager, member) -> None:
        await self._seed(call, manager, member, 3)

        page = await call(inbox.list_inbox, Principal.from_user(member), NotificationConfig())

        assert page.unread_count == 3
        assert [n.message for n in page.notifications] == [
            "You have been added to project: Project 2",
            "You have been added to project: Project 1",
            "You have been added to project: Project 0",
        ]
        assert all(n.type is NotificationType.project_member_added for n in page.notifications)

    async def test_limit_is_capped(self, call, manager, member) -> None:
        await self._seed(call, manager, member, 3)
        config = NotificationConfig(inbox_default_limit=2, inbox_max_limit=2)

        page = await call(inbox.list_inbox, Principal.from_user(member), config, limit=50)
        assert len(page.notifications) == 2
        assert page.unread_count == 3

    async def test_mark_read_and_unread_filter(self, call, manager, member) -> None:
        await self._seed(call, manager, member, 2)
        principal = Principal.from_user(member)

        page = await call(inbox.list_inbox, principal, NotificationConfig())
        marked = await call(inbox.mark_read, principal, page.notifications[0].id)
        assert marked.is_read is True

        unread = await call(inbox.list_inbox, principal, NotificationConfig(), unread_only=True)
        assert [n.id for n in unread.notifications] == [page.notifications[1].id]
        assert unread.unread_count == 1

        assert await call(inbox.mark_all_read, principal) == 1
        assert await call(inbox.mark_all_read, principal) == 0

    async def test_cannot_mark_someone_elses(self, call, manager, member, other_member) -> None:
        await self._seed(call, manager, member, 1)
        page = await call(inbox.list_inbox, Principal.from_user(member), NotificationConfig())

        with pytest.raises(NotFoundError):
            await call(inbox.mark_read, Principal.from_user(other_member), page.notifications[0].id)


class TestUsers:
    """Admin user management."""

    async def test_admin_creates_user(self, call, admin, auth_config) -> None:
        user = await call(
            users.create_user,
            Principal.from_user(admin),
            name="New Person",
            email=" New.Person@Example.com ",
            password="secret123",
            role=Role.member,
            config=auth_config,
        )
        assert user.email == "new.person@example.com"
        assert user.is_active is True

        with pytest.raises(InvalidPayloadError) as exc_info:
            await call(
                users.create_user,
                Principal.from_user(admin),
                name="Dup",
                email="new.person@example.com",
                password="secret123",
                role=Role.member,
                config=auth_config,
            )
        assert exc_info.value.field == "email"

    async def test_non_admin_cannot_create(self, call, manager, auth_config) -> None:
        with pytest.raises(ForbiddenError):
            await call(
                users.create_user,
                Principal.from_user(manager),
                name="X",
                email="x@example.com",
                password="secret123",
                role=Role.member,
                config=auth_config,
            )

    async def test_list_scoped_by_role(self, call, admin, manager, member) -> None:
        everyone = await call(users.list_users, Principal.from_user(admin))
        assert {u.id for u in everyone} == {admin.id, manager.id, member.id}

        staffable = await call(users.list_users, Principal.from_user(manager))
        assert [u.id for u in staffable] == [member.id]

        with pytest.raises(ForbiddenError):
            await call(users.list_users, Principal.from_user(member))

    async def test_toggle_status(self, call, admin, member) -> None:
        principal = Principal.from_user(admin)

        deactivated = await call(users.toggle_status, principal, member.id)
        assert deactivated.is_active is False
        reactivated = await call(users.toggle_status, principal, member.id)
        assert reactivated.is_active is True

        with pytest.raises(InvalidPayloadError):
            await call(users.toggle_status, principal, admin.id)

    async def test_toggle_status_notifies_admins_only(
        self, call, session_factory, admin, manager, member
    ) -> None:
        principal = Principal.from_user(admin)
        await call(users.toggle_status, principal, member.id)
        await call(users.toggle_status, principal, member.id)

        async with session_factory() as session:
            entries = await audit_queries.list_audit_entries(
                session, actions=[AuditAction.USER_DEACTIVATED, AuditAction.USER_UPDATED]
            )
            admin_inbox = await notification_queries.list_notifications(
                session, recipient_id=admin.id
            )
            member_inbox = await notification_queries.list_notifications(
                session, recipient_id=member.id
            )
            manager_inbox = await notification_queries.list_notifications(
                session, recipient_id=manager.id
            )

        assert [e.action for e in entries] == [AuditAction.USER_UPDATED, AuditAction.USER_DEACTIVATED]
        assert [n.type for n in admin_inbox] == [NotificationType.user_updated] * 2
        assert member_inbox == []
        assert manager_inbox == []


class TestLogin:
    """Credential checks and login activity."""

    async def test_success_issues_token(self, call, member, auth_config) -> None:
        result = await call(auth.login, "MIA.MEMBER@example.com", PASSWORD, auth_config)

        assert result.user.id == member.id
        assert decode_token(result.token, auth_config) == member.id

    async def test_failures_are_audited(self, call, admin, member, auth_config) -> None:
        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            await call(auth.login, member.email, "wrong-password", auth_config)
        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            await call(auth.login, "nobody@example.com", PASSWORD, auth_config)

        entries = await call(audit.list_login_activity, Principal.from_user(admin), AuditConfig())
        assert [e.action for e in entries] == [AuditAction.LOGIN_FAILED, AuditAction.LOGIN_FAILED]
        assert entries[0].performed_by_id is None
        assert entries[1].performed_by_id == member.id

    async def test_deactivated_account_rejected(self, call, make_user, auth_config) -> None:
        await make_user("Gone User", Role.member, is_active=False)

        with pytest.raises(ForbiddenError, match="account deactivated"):
            await call(auth.login, "gone.user@example.com", PASSWORD, auth_config)

    async def test_resolve_principal_rejects_deactivated(self, call, admin, member, auth_config) -> None:
        token = auth.issue_token(member, auth_config)
        principal = await call(auth.resolve_principal, token, auth_config)
        assert principal.id == member.id
        assert principal.role is Role.member

        await call(users.toggle_status, Principal.from_user(admin), member.id)
        with pytest.raises(ForbiddenError):
            await call(auth.resolve_principal, token, auth_config)

    async def test_activity_scoped_to_caller(self, call, admin, manager, member, auth_config) -> None:
        await call(auth.login, manager.email, PASSWORD, auth_config)
        await call(auth.login, member.email, PASSWORD, auth_config)

        own = await call(audit.list_login_activity, Principal.from_user(member), AuditConfig())
        assert [(e.action, e.performed_by_id) for e in own] == [
            (AuditAction.LOGIN_SUCCESS, member.id)
        ]

        everything = await call(audit.list_login_activity, Principal.from_user(admin), AuditConfig())
        assert [e.performed_by_id for e in everything] == [member.id, manager.id]

    async def test_logins_do_not_notify_admins(self, call, session_factory, admin, member, auth_config) -> None:
        await call(auth.login, member.email, PASSWORD, auth_config)

        page = await call(inbox.list_inbox, Principal.from_user(admin), NotificationConfig())
        assert page.notifications == []
