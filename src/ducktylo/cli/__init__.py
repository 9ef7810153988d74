"""Ducktylo CLI package."""

from ducktylo.cli.main import app

__all__ = ["app"]
