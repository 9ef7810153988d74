"""Ducktylo CLI commands."""

from __future__ import annotations

from ducktylo.cli.commands.analyze import analyze_command
from ducktylo.cli.commands.config import config_app
from ducktylo.cli.commands.database import init_db_command, seed_command
from ducktylo.cli.commands.extract import extract_command
from ducktylo.cli.commands.server import serve_command

__all__ = [
    "analyze_command",
    "config_app",
    "extract_command",
    "init_db_command",
    "seed_command",
    "serve_command",
]
