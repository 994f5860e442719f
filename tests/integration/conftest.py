"""Pytest fixtures for integration tests.

Services and the HTTP API run against an in-memory SQLite database shared
through a StaticPool, so that every fresh session sees the same data.
Production runs on PostgreSQL; the due-soon conditional insert and the
schema are portable to both.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, AsyncGenerator, TypeVar

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from worktrack.config import AuthConfig, DatabaseConfig, WorktrackConfig
from worktrack.database.models.base import Base
from worktrack.database.models.user import Role, User
from worktrack.database.queries import user as user_queries
from worktrack.services.auth import hash_password, issue_token
from worktrack.web.app import create_app

T = TypeVar("T")

PASSWORD = "secret123"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine with the full schema."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def config() -> WorktrackConfig:
    """Configuration with a cheap bcrypt cost for fast tests."""
    return WorktrackConfig(
        database=DatabaseConfig(url="sqlite+aiosqlite:///:memory:"),
        auth=AuthConfig(jwt_secret="integration-test-secret", bcrypt_rounds=4),
    )


@pytest.fixture
def call(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[Any]]:
    """Run a service function in its own fresh session, like a request does."""

    async def _call(fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        async with session_factory() as session:
            return await fn(session, *args, **kwargs)

    return _call


@pytest.fixture
def make_user(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[User]]:
    """Insert a user directly, bypassing the admin-only service."""

    async def _make_user(
        name: str,
        role: Role,
        email: str | None = None,
        is_active: bool = True,
    ) -> User:
        async with session_factory() as session, session.begin():
            return await user_queries.create_user(
                session,
                name=name,
                email=email or f"{name.lower().replace(' ', '.')}@example.com",
                password_hash=hash_password(PASSWORD, rounds=4),
                role=role,
                is_active=is_active,
            )

    return _make_user


@pytest_asyncio.fixture
async def admin(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("Ada Admin", Role.admin)


@pytest_asyncio.fixture
async def manager(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("Mona Manager", Role.manager)


@pytest_asyncio.fixture
async def other_manager(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("Otto Manager", Role.manager)


@pytest_asyncio.fixture
async def member(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("Mia Member", Role.member)


@pytest_asyncio.fixture
async def other_member(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user("Max Member", Role.member)


@pytest.fixture
def app(config: WorktrackConfig, session_factory: async_sessionmaker[AsyncSession]) -> Any:
    application = create_app(config)
    # ASGITransport does not run the lifespan
    application.state.session_factory = session_factory
    return application


@pytest_asyncio.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def auth_headers(config: WorktrackConfig) -> Callable[[User], dict[str, str]]:
    """Bearer header for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user, config.auth)}"}

    return _headers
