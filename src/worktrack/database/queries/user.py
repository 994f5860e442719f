"""User query functions for Worktrack.

Provides async functions for creating, reading and updating User records.
Like all query modules, these functions only flush; the calling service
owns the transaction so that a mutation, its audit entry and its
notifications commit or roll back together.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.database.models.user import Role, User

logger = structlog.get_logger(__name__)


async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    password_hash: str,
    role: Role,
    is_active: bool = True,
) -> User:
    """Create a new user.

    Args:
        session: Active async database session.
        name: Display name.
        email: Login email, stored lower-cased.
        password_hash: Pre-computed bcrypt hash.
        role: Role of the new user.
        is_active: Whether the account can log in.

    Returns:
        The newly created User instance.
    """
    user = User(
        name=name.strip(),
        email=email.strip().lower(),
        password_hash=password_hash,
        role=role,
        is_active=is_active,
    )
    session.add(user)
    await session.flush()

    logger.info("user_created", user_id=str(user.id), role=role.value)
    return user


async def get_user(session: AsyncSession, user_id: UUID) -> User | None:
    """Retrieve a user by ID."""
    stmt = select(User).where(User.id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Retrieve a user by login email (case-insensitive)."""
    stmt = select(User).where(User.email == email.strip().lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_users(session: AsyncSession, user_ids: Iterable[UUID]) -> list[User]:
    """Retrieve all users whose id is in user_ids (missing ids are skipped)."""
    ids = list(user_ids)
    if not ids:
        return []
    stmt = select(User).where(User.id.in_(ids))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_users(
    session: AsyncSession,
    role_filter: Role | None = None,
) -> list[User]:
    """List users, newest first, optionally filtered by role."""
    stmt = select(User)
    if role_filter is not None:
        stmt = stmt.where(User.role == role_filter)
    stmt = stmt.order_by(User.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_admin_ids(session: AsyncSession) -> list[UUID]:
    """Ids of every admin account, active or not."""
    stmt = select(User.id).where(User.role == Role.admin).order_by(User.created_at)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def set_user_active(session: AsyncSession, user: User, is_active: bool) -> User:
    """Activate or deactivate a user."""
    user.is_active = is_active
    await session.flush()

    logger.info("user_active_changed", user_id=str(user.id), is_active=is_active)
    return user
