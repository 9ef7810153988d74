"""Ducktylo: screenplay auto-ingest for the writer/producer marketplace."""

__version__ = "0.1.0"
