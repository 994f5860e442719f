"""Unit tests for password hashing and bearer tokens."""

from __future__ import annotations

import uuid
from datetime import timedelta

import jwt
import pytest

from worktrack.config import AuthConfig
from worktrack.database.models.base import utcnow
from worktrack.database.models.user import Role, User
from worktrack.errors import AuthenticationError
from worktrack.services.auth import decode_token, hash_password, issue_token, verify_password


@pytest.fixture
def auth_config() -> AuthConfig:
    return AuthConfig(jwt_secret="unit-test-secret", token_ttl_minutes=30, bcrypt_rounds=4)


@pytest.fixture
def user() -> User:
    return User(id=uuid.uuid4(), name="Bob", email="bob@example.com", role=Role.member)


class TestPasswords:
    """bcrypt hashing."""

    def test_hash_verifies(self) -> None:
        hashed = hash_password("secret1", rounds=4)
        assert hashed != "secret1"
        assert verify_password("secret1", hashed)
        assert not verify_password("secret2", hashed)

    def test_same_password_hashes_differently(self) -> None:
        assert hash_password("secret1", rounds=4) != hash_password("secret1", rounds=4)

    def test_malformed_hash_does_not_verify(self) -> None:
        assert verify_password("secret1", "not-a-bcrypt-hash") is False


class TestTokens:
    """JWT issue and decode."""

    def test_round_trip(self, auth_config: AuthConfig, user: User) -> None:
        token = issue_token(user, auth_config)
        assert decode_token(token, auth_config) == user.id

        payload = jwt.decode(token, auth_config.jwt_secret, algorithms=["HS256"])
        assert payload["role"] == "member"

    def test_expired_token_rejected(self, auth_config: AuthConfig, user: User) -> None:
        past = utcnow() - timedelta(hours=2)
        token = jwt.encode(
            {"sub": str(user.id), "iat": past, "exp": past + timedelta(minutes=1)},
            auth_config.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError, match="Invalid or expired token"):
            decode_token(token, auth_config)

    def test_wrong_secret_rejected(self, auth_config: AuthConfig, user: User) -> None:
        other = AuthConfig(jwt_secret="another-secret-value")
        with pytest.raises(AuthenticationError):
            decode_token(issue_token(user, other), auth_config)

    def test_garbage_and_bad_subject_rejected(self, auth_config: AuthConfig) -> None:
        with pytest.raises(AuthenticationError):
            decode_token("not.a.token", auth_config)

        token = jwt.encode(
            {"sub": "not-a-uuid", "exp": utcnow() + timedelta(minutes=5)},
            auth_config.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationError):
            decode_token(token, auth_config)

    def test_missing_expiry_rejected(self, auth_config: AuthConfig, user: User) -> None:
        token = jwt.encode({"sub": str(user.id)}, auth_config.jwt_secret, algorithm="HS256")
        with pytest.raises(AuthenticationError):
            decode_token(token, auth_config)
