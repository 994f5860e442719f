"""Password hashing, bearer tokens and login.

Passwords are hashed with bcrypt; access tokens are HMAC-signed JWTs
carrying the user id as ``sub``. Every login attempt, successful or not,
leaves a LOGIN_SUCCESS / LOGIN_FAILED audit entry, which is committed
before a failure is reported to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

import bcrypt
import jwt
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from worktrack.access.principal import Principal
from worktrack.config import AuthConfig
from worktrack.database.models.audit import AuditAction
from worktrack.database.models.base import utcnow
from worktrack.database.models.user import User
from worktrack.database.queries import user as user_queries
from worktrack.errors import AuthenticationError, ForbiddenError, WorktrackError
from worktrack.services import audit
from worktrack.services.transaction import atomic

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_TOKEN = "Invalid or expired token"
ACCOUNT_DEACTIVATED = "account deactivated"


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("malformed_password_hash")
        return False


def issue_token(user: User, config: AuthConfig) -> str:
    """Issue a signed access token for a user."""
    now = utcnow()
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "iat": now,
        "exp": now + timedelta(minutes=config.token_ttl_minutes),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_token(token: str, config: AuthConfig) -> UUID:
    """Verify a token and return the user id it was issued for.

    Raises:
        AuthenticationError: If the token is malformed, badly signed or
            expired.
    """
    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
        return UUID(payload["sub"])
    except jwt.ExpiredSignatureError as e:
        logger.warning("token_expired")
        raise AuthenticationError(INVALID_TOKEN) from e
    except (jwt.PyJWTError, ValueError) as e:
        logger.warning("token_invalid", error=str(e))
        raise AuthenticationError(INVALID_TOKEN) from e


async def resolve_principal(session: AsyncSession, token: str, config: AuthConfig) -> Principal:
    """Turn a bearer token into an active Principal.

    Raises:
        AuthenticationError: If the token is invalid or its user is gone.
        ForbiddenError: If the user has been deactivated.
    """
    user_id = decode_token(token, config)
    async with atomic(session):
        user = await user_queries.get_user(session, user_id)

    if user is None:
        logger.warning("token_user_missing", user_id=str(user_id))
        raise AuthenticationError(INVALID_TOKEN)
    if not user.is_active:
        logger.warning("inactive_principal_rejected", user_id=str(user_id))
        raise ForbiddenError(ACCOUNT_DEACTIVATED)
    return Principal.from_user(user)


@dataclass
class LoginResult:
    """A successful login."""

    token: str
    user: User


async def login(session: AsyncSession, email: str, password: str, config: AuthConfig) -> LoginResult:
    """Check credentials and issue a token.

    Args:
        session: Fresh session.
        email: Login email (case-insensitive).
        password: Plain-text password.
        config: Token settings.

    Returns:
        The issued token and the logged-in user.

    Raises:
        AuthenticationError: Unknown email or wrong password.
        ForbiddenError: Correct credentials for a deactivated account.
    """
    outcome: LoginResult | WorktrackError

    async with atomic(session):
        user = await user_queries.get_user_by_email(session, email)
        if user is None:
            await audit.record(
                session,
                AuditAction.LOGIN_FAILED,
                None,
                details=f"Failed login attempt for unknown email {email.strip().lower()}",
            )
            outcome = AuthenticationError(INVALID_CREDENTIALS)
        elif not verify_password(password, user.password_hash):
            await audit.record(
                session,
                AuditAction.LOGIN_FAILED,
                user.id,
                details="Failed login attempt: wrong password",
                affected_user_id=user.id,
            )
            outcome = AuthenticationError(INVALID_CREDENTIALS)
        elif not user.is_active:
            await audit.record(
                session,
                AuditAction.LOGIN_FAILED,
                user.id,
                details="Failed login attempt: account deactivated",
                affected_user_id=user.id,
            )
            outcome = ForbiddenError(ACCOUNT_DEACTIVATED)
        else:
            await audit.record(
                session,
                AuditAction.LOGIN_SUCCESS,
                user.id,
                details=f"{user.name} logged in",
                affected_user_id=user.id,
            )
            outcome = LoginResult(token=issue_token(user, config), user=user)

    if isinstance(outcome, WorktrackError):
        logger.warning("login_failed", reason=str(outcome))
        raise outcome

    logger.info("login_succeeded", user_id=str(outcome.user.id), role=outcome.user.role.value)
    return outcome
