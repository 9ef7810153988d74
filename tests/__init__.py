"""Ducktylo test suite."""
