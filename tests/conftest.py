"""Pytest configuration and fixtures."""

import asyncio
from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path

import pytest

from ducktylo.backend import SQLiteBackend
from ducktylo.config import DucktyloSettings, reset_settings, set_settings
from tests.builders import SAMPLE_SCRIPT_LINES, build_pdf


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch) -> Generator[None, None, None]:
    """Keep real credentials from the environment out of every test."""
    for name in (
        "OPENAI_API_KEY",
        "OPENAI_AUTO_INGEST_MODEL",
        "NEXT_PUBLIC_SUPABASE_URL",
        "NEXT_PUBLIC_SUPABASE_ANON_KEY",
        "DUCKTYLO_LLM_API_KEY",
        "DUCKTYLO_LLM_MODEL",
        "DUCKTYLO_BACKEND",
        "DUCKTYLO_LOG_LEVEL",
        "DUCKTYLO_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings(tmp_path: Path) -> DucktyloSettings:
    """Settings for the local backend with a test API key."""
    test_settings = DucktyloSettings(
        backend="sqlite",
        database_path=tmp_path / "ducktylo.db",
        storage_path=tmp_path / "storage",
        llm_api_key="test-key",  # pragma: allowlist secret
        llm_model="gpt-4o-mini",
        ingest_max_chars=2000,
    )
    set_settings(test_settings)
    return test_settings


@pytest.fixture
def sqlite_backend(settings: DucktyloSettings) -> Generator[SQLiteBackend, None, None]:
    """Initialized local backend in a temporary directory."""
    backend = SQLiteBackend(settings.database_path, settings.storage_path)
    backend.initialize()
    yield backend
    asyncio.run(backend.close())


@dataclass
class SeededScript:
    """Identifiers of a seeded owner, script and stored file."""

    user_id: str
    token: str
    script_id: str
    file_id: str
    storage_path: str


@pytest.fixture
def seeded(sqlite_backend: SQLiteBackend) -> SeededScript:
    """A writer owning one script with an uploaded PDF."""
    user_id, token = sqlite_backend.create_user(
        email="ada@example.com", access_token="writer-token"
    )
    script_id = sqlite_backend.create_script(user_id, title="The Engine")
    storage_path = f"scripts/{script_id}/engine.pdf"
    sqlite_backend.put_object(storage_path, build_pdf(SAMPLE_SCRIPT_LINES))
    file_id = sqlite_backend.add_script_file(
        script_id, storage_path, "application/pdf"
    )
    return SeededScript(
        user_id=user_id,
        token=token,
        script_id=script_id,
        file_id=file_id,
        storage_path=storage_path,
    )


@pytest.fixture
def stranger_token(sqlite_backend: SQLiteBackend) -> str:
    """Access token of a signed-in user who owns nothing."""
    _, token = sqlite_backend.create_user(
        email="mallory@example.com", access_token="stranger-token"
    )
    return token
