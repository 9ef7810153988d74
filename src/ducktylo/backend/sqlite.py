"""Local SQLite stand-in for the hosted backend.

Mirrors the four tables the ingest pipeline touches, plus a ``users`` table
mapping access tokens to user ids and a directory tree for stored objects.
Used for local development, the CLI and tests.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from uuid import uuid4

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

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT,
    role TEXT DEFAULT 'writer',
    access_token TEXT UNIQUE
);

CREATE TABLE IF NOT EXISTS scripts (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    primary_owner_id TEXT REFERENCES users(id),
    logline TEXT,
    synopsis TEXT,
    genres TEXT,            -- JSON array
    eras TEXT,              -- JSON array
    locations TEXT,         -- JSON array
    content_warnings TEXT,  -- JSON array
    format TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS script_files (
    id TEXT PRIMARY KEY,
    script_id TEXT NOT NULL REFERENCES scripts(id) ON DELETE CASCADE,
    storage_path TEXT NOT NULL,
    file_type TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS script_characters (
    id TEXT PRIMARY KEY,
    script_id TEXT NOT NULL REFERENCES scripts(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    role TEXT NOT NULL,
    genders TEXT,           -- JSON array
    races TEXT,             -- JSON array
    start_age INTEGER,
    end_age INTEGER,
    any_age BOOLEAN NOT NULL DEFAULT TRUE,
    description TEXT,
    position INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS script_ai_ingest_jobs (
    id TEXT PRIMARY KEY,
    script_id TEXT NOT NULL REFERENCES scripts(id) ON DELETE CASCADE,
    status TEXT NOT NULL,
    model TEXT,
    prompt_tokens INTEGER,
    completion_tokens INTEGER,
    raw_response TEXT,      -- JSON
    error_message TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_script_characters_script
    ON script_characters(script_id);
CREATE INDEX IF NOT EXISTS idx_ingest_jobs_script
    ON script_ai_ingest_jobs(script_id);
"""

_JSON_COLUMNS = frozenset(
    {"genres", "eras", "locations", "content_warnings", "genders", "races"}
)
_SCRIPT_COLUMNS = frozenset(SCRIPT_PROJECTION) - {"id"}
_JOB_COLUMNS = frozenset(
    {
        "status",
        "model",
        "prompt_tokens",
        "completion_tokens",
        "raw_response",
        "error_message",
    }
)
_CHARACTER_COLUMNS = (
    "script_id",
    "name",
    "role",
    "genders",
    "races",
    "start_age",
    "end_age",
    "any_age",
    "description",
)


def _encode(column: str, value: Any) -> Any:
    if column in _JSON_COLUMNS or column == "raw_response":
        return None if value is None else json.dumps(value, default=str)
    if isinstance(value, JobStatus):
        return value.value
    return value


def _decode_row(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    for column in _JSON_COLUMNS | {"raw_response"}:
        if column in data and data[column] is not None:
            data[column] = json.loads(data[column])
    if "any_age" in data:
        data["any_age"] = bool(data["any_age"])
    return data


class SQLiteBackend(BackendService):
    """SQLite database plus a filesystem object root."""

    def __init__(self, db_path: str | Path, storage_root: str | Path) -> None:
        """Initialize the backend.

        Args:
            db_path: SQLite file, or ``:memory:``
            storage_root: Directory that stored object paths are relative to
        """
        self.db_path = str(db_path)
        self.storage_root = Path(storage_root)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")

    def initialize(self) -> None:
        """Create tables and the storage root if missing."""
        with self._lock:
            self._conn.executescript(SCHEMA_SQL)
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info(
            "Initialized local backend",
            database=self.db_path,
            storage_root=str(self.storage_root),
        )

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run statements in one transaction, mapping errors to BackendError."""
        with self._lock:
            try:
                self._conn.execute("BEGIN")
                yield self._conn
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._conn.execute("ROLLBACK")
                logger.error("Local backend query failed", error=str(e))
                raise BackendError(message=str(e)) from e
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise

    def session(self, access_token: str) -> SQLiteSession:
        """Bind a session to the caller's token."""
        return SQLiteSession(self, access_token)

    async def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    # Seeding helpers for development and tests

    def create_user(
        self,
        email: str | None = None,
        role: str = "writer",
        access_token: str | None = None,
    ) -> tuple[str, str]:
        """Create a user and return ``(user_id, access_token)``."""
        user_id = str(uuid4())
        token = access_token or uuid4().hex
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO users (id, email, role, access_token) VALUES (?, ?, ?, ?)",
                (user_id, email, role, token),
            )
        return user_id, token

    def create_script(
        self, owner_id: str | None, title: str = "", script_id: str | None = None
    ) -> str:
        """Create a script row owned by ``owner_id``."""
        script_id = script_id or str(uuid4())
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO scripts (id, title, primary_owner_id) VALUES (?, ?, ?)",
                (script_id, title, owner_id),
            )
        return script_id

    def put_object(self, storage_path: str, data: bytes) -> None:
        """Store an object under the storage root."""
        target = self._object_path(storage_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def add_script_file(
        self, script_id: str, storage_path: str, file_type: str | None = None
    ) -> str:
        """Register a stored file for a script."""
        file_id = str(uuid4())
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO script_files (id, script_id, storage_path, file_type) "
                "VALUES (?, ?, ?, ?)",
                (file_id, script_id, storage_path, file_type),
            )
        return file_id

    def fetch_script(self, script_id: str) -> dict[str, Any] | None:
        """Full script row."""
        with self.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM scripts WHERE id = ?", (script_id,)
            ).fetchone()
        return _decode_row(row) if row else None

    def list_characters(self, script_id: str) -> list[dict[str, Any]]:
        """Characters of a script in insertion order."""
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM script_characters WHERE script_id = ? "
                "ORDER BY position",
                (script_id,),
            ).fetchall()
        return [_decode_row(row) for row in rows]

    def list_jobs(self, script_id: str) -> list[dict[str, Any]]:
        """Ingest jobs of a script, oldest first."""
        with self.transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM script_ai_ingest_jobs WHERE script_id = ? "
                "ORDER BY rowid",
                (script_id,),
            ).fetchall()
        return [_decode_row(row) for row in rows]

    def _object_path(self, storage_path: str) -> Path:
        root = self.storage_root.resolve()
        target = (root / storage_path.lstrip("/")).resolve()
        if not target.is_relative_to(root):
            raise BackendError(
                message=f"Object path escapes storage root: {storage_path}"
            )
        return target


class SQLiteSession(BackendSession):
    """Session over the local backend."""

    def __init__(self, backend: SQLiteBackend, access_token: str) -> None:
        """Initialize the session."""
        self.backend = backend
        self.access_token = access_token

    async def get_user(self) -> AuthenticatedUser | None:
        """Look up the user owning the access token."""
        if not self.access_token:
            return None
        with self.backend.transaction() as conn:
            row = conn.execute(
                "SELECT id, email, role FROM users WHERE access_token = ?",
                (self.access_token,),
            ).fetchone()
        if row is None:
            return None
        return AuthenticatedUser(id=row["id"], email=row["email"], role=row["role"])

    async def get_script(self, script_id: str) -> ScriptRecord | None:
        """Ownership projection of a script."""
        with self.backend.transaction() as conn:
            row = conn.execute(
                "SELECT id, primary_owner_id FROM scripts WHERE id = ?", (script_id,)
            ).fetchone()
        if row is None:
            return None
        return ScriptRecord(id=row["id"], primary_owner_id=row["primary_owner_id"])

    async def get_script_file(
        self, file_id: str, script_id: str
    ) -> ScriptFileRecord | None:
        """File record scoped to its script."""
        with self.backend.transaction() as conn:
            row = conn.execute(
                f"SELECT id, storage_path, file_type FROM {SCRIPT_FILES_TABLE} "
                "WHERE id = ? AND script_id = ?",
                (file_id, script_id),
            ).fetchone()
        if row is None:
            return None
        return ScriptFileRecord(
            id=row["id"], storage_path=row["storage_path"], file_type=row["file_type"]
        )

    async def download(self, storage_path: str) -> bytes:
        """Read an object from the storage root."""
        target = self.backend._object_path(storage_path)
        try:
            return target.read_bytes()
        except OSError as e:
            raise BackendError(
                message=f"Object not found: {storage_path}", status_code=404
            ) from e

    async def update_script(
        self, script_id: str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Update known script columns and return the projection."""
        unknown = set(fields) - _SCRIPT_COLUMNS
        if unknown:
            raise BackendError(message=f"Unknown script columns: {sorted(unknown)}")
        columns = sorted(fields)
        with self.backend.transaction() as conn:
            if columns:
                assignments = ", ".join(f"{column} = ?" for column in columns)
                conn.execute(
                    f"UPDATE {SCRIPTS_TABLE} SET {assignments}, "
                    "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    [_encode(column, fields[column]) for column in columns]
                    + [script_id],
                )
            row = conn.execute(
                f"SELECT {', '.join(SCRIPT_PROJECTION)} FROM {SCRIPTS_TABLE} "
                "WHERE id = ?",
                (script_id,),
            ).fetchone()
        return _decode_row(row) if row else None

    async def delete_characters(self, script_id: str) -> None:
        """Delete all characters of a script."""
        with self.backend.transaction() as conn:
            conn.execute(
                f"DELETE FROM {CHARACTERS_TABLE} WHERE script_id = ?", (script_id,)
            )

    async def insert_characters(self, rows: list[dict[str, Any]]) -> list[str]:
        """Insert characters, returning generated ids in input order."""
        ids: list[str] = []
        placeholders = ", ".join("?" for _ in range(len(_CHARACTER_COLUMNS) + 2))
        with self.backend.transaction() as conn:
            for position, row in enumerate(rows):
                character_id = str(uuid4())
                conn.execute(
                    f"INSERT INTO {CHARACTERS_TABLE} "
                    f"(id, {', '.join(_CHARACTER_COLUMNS)}, position) "
                    f"VALUES ({placeholders})",
                    [character_id]
                    + [
                        _encode(column, row.get(column))
                        for column in _CHARACTER_COLUMNS
                    ]
                    + [position],
                )
                ids.append(character_id)
        return ids

    async def create_job(self, script_id: str) -> IngestJob:
        """Insert a running job."""
        job = IngestJob(id=str(uuid4()), script_id=script_id)
        with self.backend.transaction() as conn:
            conn.execute(
                f"INSERT INTO {JOBS_TABLE} (id, script_id, status) VALUES (?, ?, ?)",
                (job.id, script_id, JobStatus.RUNNING.value),
            )
        return job

    async def update_job(self, job_id: str, fields: dict[str, Any]) -> None:
        """Update known job columns."""
        unknown = set(fields) - _JOB_COLUMNS
        if unknown:
            raise BackendError(message=f"Unknown job columns: {sorted(unknown)}")
        columns = sorted(fields)
        if not columns:
            return
        assignments = ", ".join(f"{column} = ?" for column in columns)
        with self.backend.transaction() as conn:
            conn.execute(
                f"UPDATE {JOBS_TABLE} SET {assignments}, "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                [_encode(column, fields[column]) for column in columns] + [job_id],
            )
