"""Tests for the local SQLite backend."""

import pytest

from ducktylo.backend import SQLiteBackend, SupabaseBackend, create_backend
from ducktylo.config import DucktyloSettings
from ducktylo.exceptions import BackendError, ConfigurationError
from ducktylo.ingest.models import JobStatus


class TestSQLiteSession:
    """Test session operations against a temporary database."""

    @pytest.mark.asyncio
    async def test_get_user_by_token(self, sqlite_backend, seeded):
        """Test tokens resolve to their user."""
        user = await sqlite_backend.session(seeded.token).get_user()
        assert user.id == seeded.user_id
        assert user.email == "ada@example.com"

        assert await sqlite_backend.session("unknown").get_user() is None
        assert await sqlite_backend.session("").get_user() is None

    @pytest.mark.asyncio
    async def test_get_script_and_file(self, sqlite_backend, seeded):
        """Test ownership and file lookups."""
        session = sqlite_backend.session(seeded.token)

        script = await session.get_script(seeded.script_id)
        assert script.primary_owner_id == seeded.user_id
        assert await session.get_script("missing") is None

        record = await session.get_script_file(seeded.file_id, seeded.script_id)
        assert record.storage_path == seeded.storage_path
        assert record.file_type == "application/pdf"
        assert await session.get_script_file(seeded.file_id, "other") is None

    @pytest.mark.asyncio
    async def test_download(self, sqlite_backend, seeded):
        """Test stored objects round through the storage root."""
        session = sqlite_backend.session(seeded.token)

        data = await session.download(seeded.storage_path)
        assert data.startswith(b"%PDF")

        with pytest.raises(BackendError) as exc_info:
            await session.download("scripts/missing.pdf")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_download_outside_root(self, sqlite_backend, seeded):
        """Test traversal out of the storage root is refused."""
        with pytest.raises(BackendError, match="escapes storage root"):
            await sqlite_backend.session(seeded.token).download("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_update_script_projection(self, sqlite_backend, seeded):
        """Test updates return the projection with decoded lists."""
        session = sqlite_backend.session(seeded.token)

        projection = await session.update_script(
            seeded.script_id, {"logline": "X", "genres": ["DRAMA"], "eras": None}
        )

        assert projection["id"] == seeded.script_id
        assert projection["title"] == "The Engine"
        assert projection["genres"] == ["DRAMA"]
        assert projection["eras"] is None
        assert "primary_owner_id" not in projection

    @pytest.mark.asyncio
    async def test_update_script_unknown_column(self, sqlite_backend, seeded):
        """Test unknown columns are rejected."""
        with pytest.raises(BackendError, match="Unknown script columns"):
            await sqlite_backend.session(seeded.token).update_script(
                seeded.script_id, {"primary_owner_id": "me"}
            )

    @pytest.mark.asyncio
    async def test_character_replace(self, sqlite_backend, seeded):
        """Test delete then insert keeps input order and returns ids."""
        session = sqlite_backend.session(seeded.token)
        rows = [
            {
                "script_id": seeded.script_id,
                "name": name,
                "role": "support",
                "any_age": True,
            }
            for name in ("A", "B")
        ]

        ids = await session.insert_characters(rows)
        assert len(ids) == 2
        stored = sqlite_backend.list_characters(seeded.script_id)
        assert [c["id"] for c in stored] == ids

        await session.delete_characters(seeded.script_id)
        assert sqlite_backend.list_characters(seeded.script_id) == []

    @pytest.mark.asyncio
    async def test_job_lifecycle(self, sqlite_backend, seeded):
        """Test jobs start running and accept terminal updates."""
        session = sqlite_backend.session(seeded.token)

        job = await session.create_job(seeded.script_id)
        assert job.status == JobStatus.RUNNING
        assert sqlite_backend.list_jobs(seeded.script_id)[0]["status"] == "running"

        await session.update_job(
            job.id,
            {"status": JobStatus.FAILED.value, "error_message": "boom"},
        )
        stored = sqlite_backend.list_jobs(seeded.script_id)[0]
        assert stored["status"] == "failed"
        assert stored["error_message"] == "boom"

        with pytest.raises(BackendError, match="Unknown job columns"):
            await session.update_job(job.id, {"script_id": "other"})

    @pytest.mark.asyncio
    async def test_constraint_violation_is_backend_error(self, sqlite_backend):
        """Test SQLite errors surface as BackendError."""
        session = sqlite_backend.session("any")
        with pytest.raises(BackendError):
            await session.insert_characters(
                [
                    {
                        "script_id": "no-such-script",
                        "name": "A",
                        "role": "x",
                        "any_age": True,
                    }
                ]
            )


class TestCreateBackend:
    """Test backend selection from settings."""

    @pytest.mark.asyncio
    async def test_sqlite(self, settings):
        """Test the sqlite backend is initialized on creation."""
        backend = create_backend(settings)
        assert isinstance(backend, SQLiteBackend)
        assert settings.database_path.exists()
        assert settings.storage_path.is_dir()
        await backend.close()

    def test_supabase_requires_credentials(self, tmp_path):
        """Test the hosted backend needs URL and key."""
        settings = DucktyloSettings(backend="supabase", database_path=tmp_path / "x.db")
        with pytest.raises(ConfigurationError) as exc_info:
            create_backend(settings)
        assert exc_info.value.details == {
            "missing": ["supabase_url", "supabase_anon_key"]
        }

    @pytest.mark.asyncio
    async def test_supabase(self):
        """Test the hosted backend is built from settings."""
        settings = DucktyloSettings(
            backend="supabase",
            supabase_url="https://project.supabase.co/",
            supabase_anon_key="anon",  # pragma: allowlist secret
            storage_bucket="uploads",
        )
        backend = create_backend(settings)
        assert isinstance(backend, SupabaseBackend)
        assert backend.url == "https://project.supabase.co"
        assert backend.bucket == "uploads"
        await backend.close()
