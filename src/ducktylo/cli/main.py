"""Main CLI entry point."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from ducktylo import __version__
from ducktylo.cli.commands import (
    analyze_command,
    config_app,
    extract_command,
    init_db_command,
    seed_command,
    serve_command,
)
from ducktylo.cli.errors import exit_with_error
from ducktylo.config import (
    DucktyloSettings,
    configure_logging,
    get_logger,
    get_settings,
    reset_settings,
    set_settings,
)
from ducktylo.config.settings import get_settings_for_cli
from ducktylo.exceptions import ConfigurationError

logger = get_logger(__name__)
console = Console()

app = typer.Typer(
    name="ducktylo",
    help="Screenplay auto-ingest: text extraction and AI metadata",
    pretty_exceptions_enable=False,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command(name="extract")(extract_command)
app.command(name="analyze")(analyze_command)
app.command(name="init-db")(init_db_command)
app.command(name="seed")(seed_command)
app.command(name="serve")(serve_command)

app.add_typer(config_app, name="config")


@app.command()
def version() -> None:
    """Show Ducktylo version."""
    console.print(f"Ducktylo v{__version__}")


@app.callback()
def main_callback(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (YAML, TOML, or JSON)",
            envvar="DUCKTYLO_CONFIG",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging (INFO level)"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging", envvar="DUCKTYLO_DEBUG"),
    ] = False,
) -> None:
    """Configure global options."""
    if debug:
        os.environ["DUCKTYLO_LOG_LEVEL"] = "DEBUG"
    elif verbose:
        os.environ["DUCKTYLO_LOG_LEVEL"] = "INFO"

    try:
        if config or debug or verbose:
            reset_settings()
            if config and not config.exists():
                raise ConfigurationError(
                    message=f"Config file not found: {config}",
                    hint="Check the --config path",
                )
            settings: DucktyloSettings = get_settings_for_cli(config_file=config)
            set_settings(settings)
        else:
            settings = get_settings()
    except (ConfigurationError, ValueError) as e:
        exit_with_error(console, e, "Invalid configuration")

    # Logs go to stderr so command output stays pipeable
    configure_logging(settings)
    logger.debug("Loaded settings", config_file=str(config) if config else None)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
