"""Integration tests for CLI commands.

Each test points the CLI at a TOML config whose database is a SQLite file
in the test's temporary directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import structlog
from sqlalchemy import create_engine, inspect, select
from sqlalchemy.orm import Session
from typer.testing import CliRunner

from worktrack.database.models.base import Base
from worktrack.database.models.user import Role, User
from worktrack.main import app
from worktrack.services.auth import verify_password


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the handlers the CLI binds to the runner's captured stdout."""
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def cli_runner():
    """Create a Typer CLI runner.

    Returns:
        CliRunner instance for invoking CLI commands
    """
    return CliRunner()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "worktrack.db"


@pytest.fixture
def config_file(tmp_path: Path, db_path: Path) -> Path:
    """Write a config file for a file-backed SQLite database."""
    path = tmp_path / "worktrack.toml"
    path.write_text(
        "[database]\n"
        f'url = "sqlite+aiosqlite:///{db_path.as_posix()}"\n'
        "\n"
        "[logging]\n"
        'level = "WARNING"\n'
        "\n"
        "[auth]\n"
        'jwt_secret = "cli-test-secret"\n'
        "bcrypt_rounds = 4\n"
    )
    return path


def _users(db_path: Path) -> list[User]:
    engine = create_engine(f"sqlite:///{db_path.as_posix()}")
    try:
        with Session(engine) as session:
            return list(session.scalars(select(User)))
    finally:
        engine.dispose()


@pytest.mark.integration
class TestInitDb:
    """Integration tests for the init-db command."""

    def test_creates_all_tables(self, cli_runner, config_file, db_path):
        result = cli_runner.invoke(app, ["--config", str(config_file), "init-db"])

        assert result.exit_code == 0
        assert "Database schema created" in result.stdout

        engine = create_engine(f"sqlite:///{db_path.as_posix()}")
        try:
            tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        assert set(Base.metadata.tables) <= tables

    def test_is_repeatable(self, cli_runner, config_file):
        first = cli_runner.invoke(app, ["--config", str(config_file), "init-db"])
        second = cli_runner.invoke(app, ["--config", str(config_file), "init-db"])

        assert first.exit_code == 0
        assert second.exit_code == 0


@pytest.mark.integration
class TestCreateAdmin:
    """Integration tests for the create-admin command."""

    @pytest.fixture(autouse=True)
    def schema(self, cli_runner, config_file):
        result = cli_runner.invoke(app, ["--config", str(config_file), "init-db"])
        assert result.exit_code == 0

    def _create_admin(self, cli_runner, config_file, email, password="secret123"):
        return cli_runner.invoke(
            app,
            [
                "--config",
                str(config_file),
                "create-admin",
                email,
                "--name",
                "Root Admin",
                "--password",
                password,
            ],
        )

    def test_creates_admin_user(self, cli_runner, config_file, db_path):
        result = self._create_admin(cli_runner, config_file, "Root@Example.com")

        assert result.exit_code == 0
        assert "Admin user created" in result.stdout
        assert "root@example.com" in result.stdout

        users = _users(db_path)
        assert len(users) == 1
        assert users[0].email == "root@example.com"
        assert users[0].name == "Root Admin"
        assert users[0].role is Role.admin
        assert users[0].is_active is True
        assert verify_password("secret123", users[0].password_hash)

    def test_existing_email_is_left_alone(self, cli_runner, config_file, db_path):
        self._create_admin(cli_runner, config_file, "root@example.com")

        result = self._create_admin(
            cli_runner, config_file, "root@example.com", password="another-secret"
        )

        assert result.exit_code == 0
        assert "already exists" in result.stdout

        users = _users(db_path)
        assert len(users) == 1
        assert verify_password("secret123", users[0].password_hash)

    def test_short_password_rejected(self, cli_runner, config_file, db_path):
        result = self._create_admin(cli_runner, config_file, "root@example.com", password="short")

        assert result.exit_code == 1
        assert "at least 6 characters" in result.stdout
        assert _users(db_path) == []


def test_missing_config_file_fails(cli_runner, tmp_path):
    result = cli_runner.invoke(app, ["--config", str(tmp_path / "missing.toml"), "init-db"])

    assert result.exit_code != 0
