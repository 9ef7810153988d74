"""Consistent error output for CLI commands."""

from typing import NoReturn

import typer
from rich.console import Console

from ducktylo.config import get_logger
from ducktylo.exceptions import DucktyloError

logger = get_logger(__name__)


def exit_with_error(console: Console, error: Exception, action: str) -> NoReturn:
    """Print a failed command's error and exit with status 1.

    Args:
        console: Console to print to
        error: What went wrong
        action: Short description of the failed action
    """
    logger.error("Command failed", action=action, error=str(error))
    if isinstance(error, DucktyloError):
        console.print(f"[red]Error:[/red] {action}: {error.message}", style="bold")
        if error.hint:
            console.print(f"[dim]Hint: {error.hint}[/dim]")
    else:
        console.print(f"[red]Error:[/red] {action}: {error}", style="bold")
    raise typer.Exit(1) from error
