"""Local SQLite backend commands."""

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from ducktylo.backend import SQLiteBackend
from ducktylo.cli.errors import exit_with_error
from ducktylo.config import get_settings
from ducktylo.exceptions import BackendError
from ducktylo.ingest.orchestrator import infer_file_type, script_storage_prefix

console = Console()


@contextmanager
def _local_backend() -> Iterator[SQLiteBackend]:
    settings = get_settings()
    backend = SQLiteBackend(settings.database_path, settings.storage_path)
    try:
        backend.initialize()
        yield backend
    finally:
        asyncio.run(backend.close())


def init_db_command(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Delete an existing database before creating the schema",
        ),
    ] = False,
) -> None:
    """Create the local SQLite database used by the sqlite backend."""
    settings = get_settings()
    db_path: Path = settings.database_path

    if db_path.exists() and not force:
        console.print(
            f"[red]Error:[/red] Database already exists at {db_path}", style="bold"
        )
        console.print("[dim]Use --force to recreate it.[/dim]")
        raise typer.Exit(1)

    try:
        if db_path.exists():
            db_path.unlink()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        with _local_backend():
            pass
    except (BackendError, OSError) as e:
        exit_with_error(console, e, "Failed to initialize database")

    console.print(f"[green]✓[/green] Database initialized at {db_path}")
    console.print(f"[dim]Object storage: {settings.storage_path}[/dim]")


def seed_command(
    path: Annotated[
        Path,
        typer.Argument(
            help="Script file to attach to the new script",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    email: Annotated[
        str, typer.Option("--email", "-e", help="Email of the script owner")
    ] = "writer@example.com",
    title: Annotated[
        str | None, typer.Option("--title", help="Script title")
    ] = None,
) -> None:
    """Create a user, a script and an attached file in the local backend.

    Prints the access token and identifiers needed to call the ingest API.
    """
    try:
        with _local_backend() as backend:
            user_id, token = backend.create_user(email=email)
            script_id = backend.create_script(user_id, title=title or path.stem)
            storage_path = f"{script_storage_prefix(script_id)}{path.name}"
            backend.put_object(storage_path, path.read_bytes())
            file_id = backend.add_script_file(
                script_id, storage_path, infer_file_type(None, path.name)
            )
    except (BackendError, OSError) as e:
        exit_with_error(console, e, "Failed to seed local backend")

    console.print("[green]✓[/green] Seeded local backend")
    console.print(f"  User id:      {user_id}")
    console.print(f"  Access token: {token}")
    console.print(f"  Script id:    {script_id}")
    console.print(f"  File id:      {file_id}")
