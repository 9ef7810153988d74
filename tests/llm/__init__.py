"""Tests for ducktylo.llm."""
