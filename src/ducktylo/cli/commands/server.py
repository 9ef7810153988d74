"""API server command."""

from typing import Annotated

import typer
import uvicorn
from rich.console import Console

console = Console()


def serve_command(
    host: Annotated[
        str, typer.Option("--host", "-h", help="API host address")
    ] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="API port number")] = 8000,
    reload: Annotated[
        bool, typer.Option("--reload", "-r", help="Enable auto-reload")
    ] = False,
) -> None:
    """Start the REST API server."""
    console.print("[blue]Starting Ducktylo API server...[/blue]")
    console.print(f"[dim]Host: {host}:{port}[/dim]")
    console.print(f"[dim]Docs: http://{host}:{port}/api/v1/docs[/dim]")

    # Import string plus factory so --reload can re-import the app
    uvicorn.run(
        "ducktylo.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info" if reload else "warning",
    )
