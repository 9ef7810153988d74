"""Tests for ducktylo.config."""
