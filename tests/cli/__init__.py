"""Tests for ducktylo.cli."""
