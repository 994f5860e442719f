"""Main CLI entry point for Worktrack.

Usage:
    worktrack serve --port 8000
    worktrack init-db
    worktrack create-admin admin@example.com --name "System Administrator"
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel

from worktrack.config import WorktrackConfig, load_config
from worktrack.database.connection import create_schema, get_engine, get_session_factory
from worktrack.database.models.user import Role
from worktrack.database.queries import user as user_queries
from worktrack.logging import setup_logging

app = typer.Typer(
    name="worktrack",
    help="Worktrack: role-scoped project and task tracking",
    no_args_is_help=True,
)

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Worktrack configuration
    """

    def __init__(self, config: WorktrackConfig):
        self.config = config


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: WorktrackConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the Worktrack API server."""
    import uvicorn

    from worktrack.web.app import create_app

    config = get_app_context().config
    bind_host = host or config.web.host
    bind_port = port or config.web.port

    console.print("[bold cyan]Starting Worktrack API Server[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {bind_host}")
    console.print(f"[dim]Port:[/dim] {bind_port}")
    console.print()

    uvicorn.run(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_level=config.logging.level.lower(),
    )


async def _init_db(config: WorktrackConfig) -> None:
    engine = get_engine(config.database)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


@app.command("init-db")
def init_db() -> None:
    """Create all database tables (use Alembic migrations in production)."""
    config = get_app_context().config
    asyncio.run(_init_db(config))
    console.print("[green]Database schema created[/green]")


async def _create_admin(
    config: WorktrackConfig,
    email: str,
    name: str,
    password: str,
) -> bool:
    from worktrack.services.auth import hash_password

    engine = get_engine(config.database)
    session_factory = get_session_factory(engine)
    try:
        async with session_factory() as session, session.begin():
            if await user_queries.get_user_by_email(session, email) is not None:
                return False
            await user_queries.create_user(
                session,
                name=name,
                email=email,
                password_hash=hash_password(password, rounds=config.auth.bcrypt_rounds),
                role=Role.admin,
            )
            return True
    finally:
        await engine.dispose()


@app.command("create-admin")
def create_admin(
    email: Annotated[str, typer.Argument(help="Admin login email")],
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Display name"),
    ] = "System Administrator",
    password: Annotated[
        str,
        typer.Option(
            "--password",
            prompt=True,
            hide_input=True,
            confirmation_prompt=True,
            help="Admin password",
        ),
    ] = "",
) -> None:
    """Create the initial admin account if it does not exist yet."""
    if len(password) < 6:
        console.print("[red]Password must be at least 6 characters[/red]")
        raise typer.Exit(code=1)

    config = get_app_context().config
    created = asyncio.run(_create_admin(config, email, name, password))

    if created:
        console.print(
            Panel(
                f"[bold]Email:[/bold] {email.strip().lower()}\n[bold]Name:[/bold] {name}",
                title="Admin user created",
                border_style="green",
            )
        )
    else:
        console.print(f"[yellow]A user with email {email} already exists[/yellow]")


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, configure logging and initialize the context."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)

    initialize_context(config)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
