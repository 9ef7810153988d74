"""Configuration display commands."""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ducktylo.config import get_settings

console = Console()
config_app = typer.Typer(
    name="config",
    help="Inspect Ducktylo configuration",
    rich_markup_mode="rich",
)


@config_app.command("show")
def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON")
    ] = False,
) -> None:
    """Display the effective configuration with secrets masked."""
    data = get_settings().masked_dump()

    if json_output:
        print(json.dumps(data, indent=2))
        return

    table = Table(title="Ducktylo Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key in sorted(data):
        value = data[key]
        table.add_row(key, "[dim]unset[/dim]" if value is None else str(value))
    console.print(table)
