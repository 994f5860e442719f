"""Unit-of-work helper shared by all services."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from worktrack.errors import ConflictError

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as one transaction.

    Commits on success and rolls back on any exception. Lost optimistic
    version checks and unique/primary key collisions are reported as
    ConflictError so the caller can retry.

    Args:
        session: A session with no transaction in progress.

    Yields:
        The same session, inside the transaction.

    Raises:
        ConflictError: On a stale version or an integrity violation.
    """
    try:
        async with session.begin():
            yield session
    except StaleDataError as e:
        logger.warning("concurrent_modification", error=str(e))
        raise ConflictError(
            "The resource was modified concurrently, please retry"
        ) from e
    except IntegrityError as e:
        logger.warning("integrity_conflict", error=str(e.orig))
        raise ConflictError("The change conflicts with existing data") from e
