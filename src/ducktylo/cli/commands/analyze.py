"""Run the auto-ingest model call on a local script file."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ducktylo.cli.commands.extract import read_script_text
from ducktylo.cli.errors import exit_with_error
from ducktylo.config import get_settings
from ducktylo.exceptions import IngestError
from ducktylo.ingest.client import AutoIngestClient
from ducktylo.ingest.models import AutoIngestResult
from ducktylo.llm import create_provider

console = Console()


async def _analyze(script_text: str) -> AutoIngestResult:
    settings = get_settings()
    provider = create_provider(settings)
    try:
        client = AutoIngestClient(provider, settings)
        return await client.run_auto_ingest(script_text)
    finally:
        await provider.aclose()


def analyze_command(
    path: Annotated[
        Path,
        typer.Argument(
            help="PDF, DOCX or FDX script file",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    file_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="MIME type or extension override"),
    ] = None,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON")
    ] = False,
) -> None:
    """Extract metadata and characters from a script file.

    Nothing is persisted; this runs extraction and one model call.
    """
    try:
        text = read_script_text(path, file_type)
        result = asyncio.run(_analyze(text))
    except (IngestError, OSError) as e:
        exit_with_error(console, e, "Analysis failed")

    if json_output:
        # Pure JSON without ANSI escape codes
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    _print_result(result)


def _print_result(result: AutoIngestResult) -> None:
    console.print(f"[bold cyan]{result.logline or '(no logline)'}[/bold cyan]\n")
    if result.synopsis:
        console.print(result.synopsis + "\n")

    summary = Table(show_header=False, box=None)
    summary.add_column("Field", style="bold")
    summary.add_column("Value")
    summary.add_row("Genres", ", ".join(result.genres) or "-")
    summary.add_row("Eras", ", ".join(result.eras) or "-")
    summary.add_row("Locations", ", ".join(result.locations) or "-")
    summary.add_row("Content warnings", ", ".join(result.content_warnings) or "-")
    summary.add_row("Format", result.format or "-")
    if result.estimated_page_count is not None:
        summary.add_row("Estimated pages", str(result.estimated_page_count))
    summary.add_row("Model", result.model)
    console.print(summary)

    if not result.characters:
        console.print("\n[yellow]No characters found[/yellow]")
        return

    characters = Table(title="Characters")
    characters.add_column("Name", style="bold")
    characters.add_column("Role")
    characters.add_column("Age")
    characters.add_column("Description")
    for character in result.characters:
        if character.any_age:
            age = "any"
        else:
            age = f"{character.start_age}-{character.end_age}"
        characters.add_row(
            character.name,
            character.role or "-",
            age,
            character.description or "",
        )
    console.print(characters)
