"""Contract of the hosted auth/database/storage collaborator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ducktylo.ingest.models import (
    AuthenticatedUser,
    IngestJob,
    ScriptFileRecord,
    ScriptRecord,
)

SCRIPTS_TABLE = "scripts"
SCRIPT_FILES_TABLE = "script_files"
CHARACTERS_TABLE = "script_characters"
JOBS_TABLE = "script_ai_ingest_jobs"

SCRIPT_PROJECTION = (
    "id",
    "title",
    "logline",
    "synopsis",
    "genres",
    "eras",
    "locations",
    "content_warnings",
    "format",
)


class BackendSession(ABC):
    """Per-request view of the backend, bound to one caller's access token.

    Every method raises ``BackendError`` when the collaborator fails.
    """

    @abstractmethod
    async def get_user(self) -> AuthenticatedUser | None:
        """Current user for the bound token, or None when not signed in."""

    @abstractmethod
    async def get_script(self, script_id: str) -> ScriptRecord | None:
        """Ownership projection of a script."""

    @abstractmethod
    async def get_script_file(
        self, file_id: str, script_id: str
    ) -> ScriptFileRecord | None:
        """File record, scoped to the given script."""

    @abstractmethod
    async def download(self, storage_path: str) -> bytes:
        """Download an object from the script-file bucket."""

    @abstractmethod
    async def update_script(
        self, script_id: str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Update a script row and return its ``SCRIPT_PROJECTION``."""

    @abstractmethod
    async def delete_characters(self, script_id: str) -> None:
        """Delete every character of a script."""

    @abstractmethod
    async def insert_characters(self, rows: list[dict[str, Any]]) -> list[str]:
        """Insert character rows, returning generated ids in input order."""

    @abstractmethod
    async def create_job(self, script_id: str) -> IngestJob:
        """Insert a job row with status ``running``."""

    @abstractmethod
    async def update_job(self, job_id: str, fields: dict[str, Any]) -> None:
        """Update a job row."""


class BackendService(ABC):
    """Process-wide backend handle that opens per-request sessions."""

    @abstractmethod
    def session(self, access_token: str) -> BackendSession:
        """Bind a session to a caller's access token."""

    async def close(self) -> None:
        """Release shared resources."""
        return None
