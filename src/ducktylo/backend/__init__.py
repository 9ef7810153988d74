"""Auth/database/storage collaborator implementations."""

from __future__ import annotations

from ducktylo.backend.base import BackendService, BackendSession
from ducktylo.backend.sqlite import SQLiteBackend
from ducktylo.backend.supabase import SupabaseBackend
from ducktylo.config import DucktyloSettings

__all__ = [
    "BackendService",
    "BackendSession",
    "SQLiteBackend",
    "SupabaseBackend",
    "create_backend",
]


def create_backend(settings: DucktyloSettings) -> BackendService:
    """Create the backend selected by ``settings.backend``.

    Raises:
        ConfigurationError: If the hosted backend is selected without
            URL and key
    """
    if settings.backend == "sqlite":
        backend = SQLiteBackend(settings.database_path, settings.storage_path)
        backend.initialize()
        return backend

    settings.require_backend_credentials()
    return SupabaseBackend(
        url=settings.supabase_url or "",
        anon_key=settings.supabase_anon_key or "",
        bucket=settings.storage_bucket,
        timeout=settings.backend_timeout,
    )
