"""Tests for the Supabase backend over a mocked HTTP transport."""

import json

import httpx
import pytest

from ducktylo.backend.supabase import SupabaseBackend
from ducktylo.exceptions import BackendError

BASE_URL = "https://project.supabase.co"


class FakeSupabase:
    """Records requests and answers them from a route table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"message": "no route"})
        answer = self.routes[key]
        return answer(request) if callable(answer) else answer


def make_session(routes, token="user-jwt"):
    """Create a backend session bound to ``token`` over ``routes``."""
    fake = FakeSupabase(routes)
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    backend = SupabaseBackend(
        url=BASE_URL,
        anon_key="anon-key",  # pragma: allowlist secret
        bucket="script_files",
        client=client,
    )
    return backend.session(token), fake, backend


class TestSupabaseSession:
    """Test the PostgREST, auth and storage calls."""

    @pytest.mark.asyncio
    async def test_get_user_forwards_token(self):
        """Test the caller's token and the anon key are sent."""
        session, fake, backend = make_session(
            {
                ("GET", "/auth/v1/user"): httpx.Response(
                    200,
                    json={
                        "id": "user-1",
                        "email": "ada@example.com",
                        "user_metadata": {"role": "writer"},
                    },
                )
            }
        )

        user = await session.get_user()

        assert user.id == "user-1"
        assert user.role == "writer"
        request = fake.requests[0]
        assert request.headers["Authorization"] == "Bearer user-jwt"
        assert request.headers["apikey"] == "anon-key"
        await backend.close()

    @pytest.mark.asyncio
    async def test_get_user_unauthenticated(self):
        """Test a rejected token resolves to no user."""
        session, _, backend = make_session(
            {("GET", "/auth/v1/user"): httpx.Response(401, json={"msg": "bad jwt"})}
        )
        assert await session.get_user() is None
        await backend.close()

    @pytest.mark.asyncio
    async def test_get_script_filters(self):
        """Test the script lookup uses PostgREST equality filters."""
        session, fake, backend = make_session(
            {
                ("GET", "/rest/v1/scripts"): httpx.Response(
                    200, json=[{"id": "s1", "primary_owner_id": "user-1"}]
                )
            }
        )

        script = await session.get_script("s1")

        assert script.primary_owner_id == "user-1"
        params = fake.requests[0].url.params
        assert params["id"] == "eq.s1"
        assert params["select"] == "id,primary_owner_id"
        await backend.close()

    @pytest.mark.asyncio
    async def test_get_script_missing(self):
        """Test an empty result is no script."""
        session, _, backend = make_session(
            {("GET", "/rest/v1/scripts"): httpx.Response(200, json=[])}
        )
        assert await session.get_script("s1") is None
        await backend.close()

    @pytest.mark.asyncio
    async def test_get_script_file_scoped(self):
        """Test the file lookup filters on both ids."""
        session, fake, backend = make_session(
            {
                ("GET", "/rest/v1/script_files"): httpx.Response(
                    200,
                    json=[
                        {
                            "id": "f1",
                            "storage_path": "scripts/s1/a.pdf",
                            "file_type": None,
                        }
                    ],
                )
            }
        )

        record = await session.get_script_file("f1", "s1")

        assert record.storage_path == "scripts/s1/a.pdf"
        assert record.file_type is None
        params = fake.requests[0].url.params
        assert params["id"] == "eq.f1"
        assert params["script_id"] == "eq.s1"
        await backend.close()

    @pytest.mark.asyncio
    async def test_download(self):
        """Test objects are fetched from the configured bucket."""
        session, fake, backend = make_session(
            {
                (
                    "GET",
                    "/storage/v1/object/script_files/scripts/s1/a.pdf",
                ): httpx.Response(200, content=b"%PDF-1.4"),
            }
        )

        assert await session.download("scripts/s1/a.pdf") == b"%PDF-1.4"
        await backend.close()

    @pytest.mark.asyncio
    async def test_download_failure(self):
        """Test a storage error carries its status."""
        session, _, backend = make_session(
            {
                (
                    "GET",
                    "/storage/v1/object/script_files/scripts/s1/a.pdf",
                ): httpx.Response(400, json={"error": "Object not found"}),
            }
        )

        with pytest.raises(BackendError) as exc_info:
            await session.download("scripts/s1/a.pdf")
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Object not found"
        await backend.close()

    @pytest.mark.asyncio
    async def test_update_script_returns_representation(self):
        """Test the PATCH asks for the updated projection."""
        session, fake, backend = make_session(
            {
                ("PATCH", "/rest/v1/scripts"): httpx.Response(
                    200, json=[{"id": "s1", "logline": "X", "genres": ["DRAMA"]}]
                )
            }
        )

        projection = await session.update_script("s1", {"logline": "X"})

        assert projection["genres"] == ["DRAMA"]
        request = fake.requests[0]
        assert request.headers["Prefer"] == "return=representation"
        assert json.loads(request.content) == {"logline": "X"}
        assert "content_warnings" in request.url.params["select"]
        await backend.close()

    @pytest.mark.asyncio
    async def test_insert_and_delete_characters(self):
        """Test bulk insert returns ids and delete filters by script."""
        session, fake, backend = make_session(
            {
                ("POST", "/rest/v1/script_characters"): httpx.Response(
                    201, json=[{"id": "c1"}, {"id": "c2"}]
                ),
                ("DELETE", "/rest/v1/script_characters"): httpx.Response(204),
            }
        )

        await session.delete_characters("s1")
        ids = await session.insert_characters([{"name": "A"}, {"name": "B"}])

        assert ids == ["c1", "c2"]
        assert fake.requests[0].url.params["script_id"] == "eq.s1"
        assert json.loads(fake.requests[1].content) == [{"name": "A"}, {"name": "B"}]
        assert await session.insert_characters([]) == []
        assert len(fake.requests) == 2
        await backend.close()

    @pytest.mark.asyncio
    async def test_job_create_and_update(self):
        """Test the job row is created running and patched by id."""
        session, fake, backend = make_session(
            {
                ("POST", "/rest/v1/script_ai_ingest_jobs"): httpx.Response(
                    201, json=[{"id": "job-1"}]
                ),
                ("PATCH", "/rest/v1/script_ai_ingest_jobs"): httpx.Response(204),
            }
        )

        job = await session.create_job("s1")
        await session.update_job(job.id, {"status": "succeeded"})

        assert job.id == "job-1"
        assert json.loads(fake.requests[0].content) == {
            "script_id": "s1",
            "status": "running",
        }
        assert fake.requests[1].url.params["id"] == "eq.job-1"
        await backend.close()

    @pytest.mark.asyncio
    async def test_postgrest_error(self):
        """Test PostgREST errors surface their message."""
        session, _, backend = make_session(
            {
                ("PATCH", "/rest/v1/scripts"): httpx.Response(
                    403, json={"message": "new row violates row-level security"}
                )
            }
        )

        with pytest.raises(BackendError, match="row-level security"):
            await session.update_script("s1", {"logline": "X"})
        await backend.close()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Test connection failures become backend errors."""

        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        session, _, backend = make_session({("GET", "/auth/v1/user"): refuse})

        with pytest.raises(BackendError, match="refused"):
            await session.get_user()
        await backend.close()

    @pytest.mark.asyncio
    async def test_non_json_user_body(self):
        """Test a gateway page instead of JSON becomes a backend error."""
        session, _, backend = make_session(
            {("GET", "/auth/v1/user"): httpx.Response(200, text="<html>gateway</html>")}
        )

        with pytest.raises(BackendError) as exc_info:
            await session.get_user()

        assert exc_info.value.status_code == 200
        assert exc_info.value.details == {"action": "get user"}
        await backend.close()

    @pytest.mark.asyncio
    async def test_non_json_rows_body(self):
        """Test a truncated PostgREST body becomes a backend error."""
        session, _, backend = make_session(
            {
                ("PATCH", "/rest/v1/script_ai_ingest_jobs"): httpx.Response(
                    200, text='[{"id"'
                )
            }
        )

        with pytest.raises(BackendError) as exc_info:
            await session.update_job("job-1", {"status": "failed"})

        assert exc_info.value.details == {"action": "update job"}
        await backend.close()
