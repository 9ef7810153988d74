"""Tests for ducktylo.api."""
