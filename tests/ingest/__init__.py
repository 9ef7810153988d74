"""Tests for ducktylo.ingest."""
