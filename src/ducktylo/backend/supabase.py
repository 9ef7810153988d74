"""Supabase backend: thin httpx pass-through to auth, PostgREST and storage."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import httpx

from ducktylo.backend.base import (
    CHARACTERS_TABLE,
    JOBS_TABLE,
    SCRIPT_FILES_TABLE,
    SCRIPT_PROJECTION,
    SCRIPTS_TABLE,
    BackendService,
    BackendSession,
)
from ducktylo.config import get_logger
from ducktylo.exceptions import BackendError
from ducktylo.ingest.models import (
    AuthenticatedUser,
    IngestJob,
    JobStatus,
    ScriptFileRecord,
    ScriptRecord,
)

logger = get_logger(__name__)


class SupabaseSession(BackendSession):
    """Backend session forwarding the caller's bearer token.

    Row-level security on the hosted project applies to every call.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        anon_key: str,
        access_token: str,
        bucket: str,
    ) -> None:
        """Initialize the session.

        Args:
            client: Shared HTTP client
            base_url: Project URL without trailing slash
            anon_key: Public API key
            access_token: Caller's JWT
            bucket: Storage bucket holding script files
        """
        self.client = client
        self.base_url = base_url
        self.bucket = bucket
        self.headers = {
            "apikey": anon_key,
            "Authorization": f"Bearer {access_token}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.request(
                method, url, params=params, json=json_body, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(
                "Backend request failed",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise BackendError(message=f"Backend request failed: {e}") from e
        return response

    @staticmethod
    def _error(response: httpx.Response, action: str) -> BackendError:
        message = response.text
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError):
            body = None
        if isinstance(body, dict):
            message = str(
                body.get("message") or body.get("error") or body.get("msg") or message
            )
        logger.warning(
            "Backend returned an error",
            action=action,
            status_code=response.status_code,
            message=message[:300],
        )
        return BackendError(
            message=message or f"{action} failed",
            status_code=response.status_code,
            details={"action": action},
        )

    async def _rows(
        self,
        method: str,
        table: str,
        action: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> list[dict[str, Any]]:
        response = await self._request(
            method,
            f"/rest/v1/{table}",
            params=params,
            json_body=json_body,
            prefer=prefer,
        )
        if response.status_code >= 400:
            raise self._error(response, action)
        if response.status_code == 204 or not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise self._error(response, action) from e
        if isinstance(data, dict):
            return [data]
        return [row for row in data if isinstance(row, dict)]

    async def get_user(self) -> AuthenticatedUser | None:
        """Resolve the bearer token via ``/auth/v1/user``."""
        response = await self._request("GET", "/auth/v1/user")
        if response.status_code in {401, 403}:
            return None
        if response.status_code >= 400:
            raise self._error(response, "get user")
        try:
            data = response.json()
        except ValueError as e:
            raise self._error(response, "get user") from e
        if not isinstance(data, dict) or not data.get("id"):
            return None
        metadata = data.get("user_metadata") or {}
        return AuthenticatedUser(
            id=str(data["id"]),
            email=data.get("email"),
            role=metadata.get("role") if isinstance(metadata, dict) else None,
        )

    async def get_script(self, script_id: str) -> ScriptRecord | None:
        """Select ``id, primary_owner_id`` of one script."""
        rows = await self._rows(
            "GET",
            SCRIPTS_TABLE,
            "select script",
            params={
                "id": f"eq.{script_id}",
                "select": "id,primary_owner_id",
                "limit": "1",
            },
        )
        if not rows:
            return None
        row = rows[0]
        owner = row.get("primary_owner_id")
        return ScriptRecord(
            id=str(row["id"]), primary_owner_id=str(owner) if owner else None
        )

    async def get_script_file(
        self, file_id: str, script_id: str
    ) -> ScriptFileRecord | None:
        """Select a file record scoped to its script."""
        rows = await self._rows(
            "GET",
            SCRIPT_FILES_TABLE,
            "select script file",
            params={
                "id": f"eq.{file_id}",
                "script_id": f"eq.{script_id}",
                "select": "id,storage_path,file_type",
                "limit": "1",
            },
        )
        if not rows:
            return None
        row = rows[0]
        return ScriptFileRecord(
            id=str(row["id"]),
            storage_path=str(row["storage_path"]),
            file_type=row.get("file_type"),
        )

    async def download(self, storage_path: str) -> bytes:
        """Download ``storage_path`` from the bucket."""
        path = f"/storage/v1/object/{quote(self.bucket)}/{quote(storage_path)}"
        response = await self._request("GET", path)
        if response.status_code != 200:
            raise self._error(response, "download")
        return response.content

    async def update_script(
        self, script_id: str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        """PATCH the script and return the updated projection."""
        rows = await self._rows(
            "PATCH",
            SCRIPTS_TABLE,
            "update script",
            params={"id": f"eq.{script_id}", "select": ",".join(SCRIPT_PROJECTION)},
            json_body=fields,
            prefer="return=representation",
        )
        return rows[0] if rows else None

    async def delete_characters(self, script_id: str) -> None:
        """DELETE all characters of the script."""
        await self._rows(
            "DELETE",
            CHARACTERS_TABLE,
            "delete characters",
            params={"script_id": f"eq.{script_id}"},
        )

    async def insert_characters(self, rows: list[dict[str, Any]]) -> list[str]:
        """Bulk insert characters, returning their ids."""
        if not rows:
            return []
        inserted = await self._rows(
            "POST",
            CHARACTERS_TABLE,
            "insert characters",
            params={"select": "id"},
            json_body=rows,
            prefer="return=representation",
        )
        return [str(row.get("id", "")) for row in inserted]

    async def create_job(self, script_id: str) -> IngestJob:
        """Insert a running job and return it."""
        rows = await self._rows(
            "POST",
            JOBS_TABLE,
            "create job",
            params={"select": "id"},
            json_body={"script_id": script_id, "status": JobStatus.RUNNING.value},
            prefer="return=representation",
        )
        if not rows or not rows[0].get("id"):
            raise BackendError(message="Job insert returned no id")
        return IngestJob(id=str(rows[0]["id"]), script_id=script_id)

    async def update_job(self, job_id: str, fields: dict[str, Any]) -> None:
        """PATCH the job row."""
        await self._rows(
            "PATCH",
            JOBS_TABLE,
            "update job",
            params={"id": f"eq.{job_id}"},
            json_body=fields,
        )


class SupabaseBackend(BackendService):
    """Hosted Supabase project shared by every request of the process."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        bucket: str = "script_files",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            url: Project URL
            anon_key: Public API key
            bucket: Storage bucket for script files
            timeout: HTTP timeout in seconds
            client: Optional preconfigured HTTP client
        """
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.bucket = bucket
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    def session(self, access_token: str) -> SupabaseSession:
        """Bind a session to the caller's token."""
        return SupabaseSession(
            client=self.client,
            base_url=self.url,
            anon_key=self.anon_key,
            access_token=access_token,
            bucket=self.bucket,
        )

    async def close(self) -> None:
        """Close the shared HTTP client."""
        await self.client.aclose()
