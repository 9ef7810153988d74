"""Tests for ducktylo.backend."""
