"""User lifecycle: listing, creation and activation toggling.

Users are never hard-deleted. Deactivated users keep their history and
can be reactivated; they cannot log in or use existing tokens.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.access.evaluator import Action, enforce
from worktrack.access.principal import Principal
from worktrack.config import AuthConfig
from worktrack.database.models.audit import AuditAction
from worktrack.database.models.user import Role, User
from worktrack.database.queries import user as user_queries
from worktrack.errors import ForbiddenError, InvalidPayloadError, NotFoundError
from worktrack.services import audit
from worktrack.services.auth import hash_password
from worktrack.services.fanout import FanoutEvent, emit
from worktrack.services.transaction import atomic

logger = structlog.get_logger(__name__)


async def list_users(
    session: AsyncSession,
    principal: Principal,
    role_filter: Role | None = None,
) -> list[User]:
    """List users, newest first.

    Admins see everyone. Managers see member-role users only, which is
    what they need to staff projects. Members may not list users.
    """
    match principal.role:
        case Role.admin:
            scope = role_filter
        case Role.manager:
            if role_filter not in (None, Role.member):
                return []
            scope = Role.member
        case Role.member:
            raise ForbiddenError("role not permitted")
        case _:
            raise ValueError(f"No user scope for role: {principal.role!r}")

    async with atomic(session):
        return await user_queries.list_users(session, role_filter=scope)


async def create_user(
    session: AsyncSession,
    principal: Principal,
    name: str,
    email: str,
    password: str,
    role: Role,
    config: AuthConfig,
) -> User:
    """Create a user account (admin only).

    Raises:
        ForbiddenError: If the caller is not an admin.
        InvalidPayloadError: If the name is blank or the email is taken.
    """
    enforce(principal, Action.USER_MANAGE)
    if not name.strip():
        raise InvalidPayloadError("name", "Name must not be blank")

    async with atomic(session):
        if await user_queries.get_user_by_email(session, email) is not None:
            raise InvalidPayloadError("email", "A user with this email already exists")

        user = await user_queries.create_user(
            session,
            name=name,
            email=email,
            password_hash=hash_password(password, rounds=config.bcrypt_rounds),
            role=role,
        )
        await audit.record(
            session,
            AuditAction.USER_CREATED,
            principal.id,
            details=f"Created {role.value} account for {user.name}",
            affected_user_id=user.id,
        )
        await emit(session, FanoutEvent.for_user(AuditAction.USER_CREATED, principal, user))

    return user


async def toggle_status(session: AsyncSession, principal: Principal, user_id: UUID) -> User:
    """Flip a user between active and deactivated (admin only).

    Raises:
        ForbiddenError: If the caller is not an admin.
        InvalidPayloadError: If admins try to deactivate themselves.
        NotFoundError: If the user does not exist.
    """
    enforce(principal, Action.USER_MANAGE)
    if user_id == principal.id:
        raise InvalidPayloadError("user_id", "You cannot deactivate your own account")

    async with atomic(session):
        user = await user_queries.get_user(session, user_id)
        if user is None:
            raise NotFoundError("User")

        user = await user_queries.set_user_active(session, user, not user.is_active)
        action = AuditAction.USER_UPDATED if user.is_active else AuditAction.USER_DEACTIVATED
        await audit.record(
            session,
            action,
            principal.id,
            details=f"{'Activated' if user.is_active else 'Deactivated'} {user.name}",
            affected_user_id=user.id,
        )
        await emit(session, FanoutEvent.for_user(action, principal, user))

    return user
