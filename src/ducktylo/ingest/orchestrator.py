"""Auto-ingest orchestration: from a stored script file to persisted metadata.

One run is a linear chain of awaited steps::

    authenticate -> authorize -> resolve file -> download -> extract
    -> create job (running) -> model call -> update script
    -> replace characters -> job succeeded

Any failure after the job exists marks the job ``failed`` with the error
message before the error propagates. Failures before that leave no job.
The writes are sequential, not transactional: a failure after the script
update leaves the script updated and the old characters in place.
"""

from __future__ import annotations

import asyncio
from pathlib import PurePosixPath
from typing import Any

from ducktylo.backend.base import BackendService, BackendSession
from ducktylo.config import get_logger
from ducktylo.exceptions import (
    BackendError,
    BadRequestError,
    DownloadFailedError,
    IngestError,
    NotFoundError,
    PersistenceFailedError,
    UnauthenticatedError,
    UnauthorizedError,
)
from ducktylo.ingest.client import AutoIngestClient
from ducktylo.ingest.models import (
    AuthenticatedUser,
    AutoIngestCharacter,
    IngestJob,
    IngestOutcome,
    IngestRequest,
    JobStatus,
    ScriptFileRecord,
    validate_character,
)
from ducktylo.ingest.text_extractor import DOCX_MIME, TextExtractor

logger = get_logger(__name__)

DEFAULT_FILE_TYPE = "application/pdf"

_EXTENSION_TO_MIME = {
    "pdf": "application/pdf",
    "docx": DOCX_MIME,
    "fdx": "application/xml",
}


def infer_file_type(file_type: str | None, storage_path: str | None) -> str:
    """Pick the type handed to the extractor.

    The recorded type wins, then the storage path's extension, then PDF as
    a best-effort default.
    """
    if file_type and file_type.strip():
        return file_type
    if storage_path:
        extension = PurePosixPath(storage_path).suffix.lower().removeprefix(".")
        if extension in _EXTENSION_TO_MIME:
            return _EXTENSION_TO_MIME[extension]
    return DEFAULT_FILE_TYPE


def script_storage_prefix(script_id: str) -> str:
    """Storage prefix under which a script's uploads live."""
    return f"scripts/{script_id}/"


class IngestOrchestrator:
    """Runs the auto-ingest pipeline for one request at a time."""

    def __init__(
        self,
        backend: BackendService,
        client: AutoIngestClient,
        extractor: TextExtractor | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            backend: Auth/database/storage collaborator
            client: Model client used for metadata extraction
            extractor: Text extractor, defaults to a new TextExtractor
        """
        self.backend = backend
        self.client = client
        self.extractor = extractor or TextExtractor()

    async def run(self, access_token: str, request: IngestRequest) -> IngestOutcome:
        """Execute one auto-ingest run.

        Args:
            access_token: Caller's bearer token
            request: Script id plus either a file id or a storage path

        Returns:
            Updated script projection, inserted characters and the job

        Raises:
            IngestError: Subclass matching the failed step
        """
        script_id = (request.script_id or "").strip()
        if not script_id:
            raise BadRequestError(message="scriptId is required")

        session = self.backend.session(access_token)
        log = logger.bind(script_id=script_id)

        user = await self._authenticate(session)
        await self._authorize(session, script_id, user)
        file_record = await self._resolve_file(session, script_id, request)

        try:
            data = await session.download(file_record.storage_path)
        except BackendError as e:
            log.error("Script file download failed", error=e.message)
            raise DownloadFailedError(
                message="Could not download the script file, please retry",
                details={"storage_path": file_record.storage_path},
            ) from e
        if data is None:
            raise DownloadFailedError(message="Script file download returned no data")

        file_type = infer_file_type(file_record.file_type, file_record.storage_path)
        # Parsing is CPU bound; keep the event loop free for other requests
        script_text = await asyncio.to_thread(self.extractor.extract, data, file_type)

        try:
            job = await session.create_job(script_id)
        except BackendError as e:
            log.error("Could not create ingest job", error=e.message)
            raise PersistenceFailedError(
                message="Could not start the AI job, please retry"
            ) from e

        log = log.bind(job_id=job.id)
        log.info("Started auto-ingest job", text_length=len(script_text))

        try:
            return await self._ingest(session, job, script_text)
        except Exception as e:
            error = (
                e
                if isinstance(e, IngestError)
                else IngestError(message=str(e) or type(e).__name__)
            )
            await self._fail_job(session, job, error.message)
            error.job_id = job.id
            if error is e:
                raise
            raise error from e

    async def _ingest(
        self, session: BackendSession, job: IngestJob, script_text: str
    ) -> IngestOutcome:
        """Model call and persistence; runs only once the job exists."""
        result = await self.client.run_auto_ingest(script_text)

        try:
            script = await session.update_script(job.script_id, result.script_update())
        except BackendError as e:
            raise PersistenceFailedError(message=e.message) from e

        characters = await self._replace_characters(
            session, job.script_id, result.characters
        )

        job.status = JobStatus.SUCCEEDED
        job.model = result.model
        job.prompt_tokens = result.prompt_tokens
        job.completion_tokens = result.completion_tokens
        job.raw_response = result.raw_response
        try:
            await session.update_job(
                job.id,
                {
                    "status": job.status.value,
                    "model": job.model,
                    "prompt_tokens": job.prompt_tokens,
                    "completion_tokens": job.completion_tokens,
                    "raw_response": job.raw_response,
                },
            )
        except BackendError as e:
            raise PersistenceFailedError(message=e.message) from e

        logger.info(
            "Auto-ingest job succeeded",
            script_id=job.script_id,
            job_id=job.id,
            character_count=len(characters),
        )
        return IngestOutcome(script=script, characters=characters, job=job)

    async def save_characters(
        self,
        access_token: str,
        script_id: str,
        characters: list[AutoIngestCharacter],
    ) -> list[dict[str, Any]]:
        """Replace a script's characters with manually entered ones.

        Every character is validated first; nothing is written when one is
        invalid.

        Raises:
            BadRequestError: If a character fails validation
            UnauthenticatedError: If the caller is not signed in
            UnauthorizedError: If the caller does not own the script
            NotFoundError: If the script does not exist
            PersistenceFailedError: If a write fails
        """
        script_id = (script_id or "").strip()
        if not script_id:
            raise BadRequestError(message="scriptId is required")
        validated = [validate_character(character) for character in characters]

        session = self.backend.session(access_token)
        user = await self._authenticate(session)
        await self._authorize(session, script_id, user)
        return await self._replace_characters(session, script_id, validated)

    async def _authenticate(self, session: BackendSession) -> AuthenticatedUser:
        try:
            user = await session.get_user()
        except BackendError as e:
            logger.warning("Could not resolve caller", error=e.message)
            raise UnauthenticatedError() from e
        if user is None:
            raise UnauthenticatedError()
        return user

    async def _authorize(
        self, session: BackendSession, script_id: str, user: AuthenticatedUser
    ) -> None:
        try:
            script = await session.get_script(script_id)
        except BackendError as e:
            raise NotFoundError(message="Script not found") from e
        if script is None:
            raise NotFoundError(message="Script not found")
        if script.primary_owner_id != user.id:
            logger.warning(
                "Rejected ingest for non-owner", script_id=script_id, user_id=user.id
            )
            raise UnauthorizedError(
                message="You are not allowed to modify this script"
            )

    async def _resolve_file(
        self, session: BackendSession, script_id: str, request: IngestRequest
    ) -> ScriptFileRecord:
        if request.file_id:
            try:
                record = await session.get_script_file(request.file_id, script_id)
            except BackendError as e:
                raise NotFoundError(message="File not found") from e
            if record is None:
                raise NotFoundError(message="File not found")
            return record

        if request.storage_path:
            path = request.storage_path.strip().lstrip("/")
            parts = PurePosixPath(path).parts
            if ".." in parts or not path.startswith(script_storage_prefix(script_id)):
                raise UnauthorizedError(
                    message="Storage path does not belong to this script",
                    details={"storage_path": request.storage_path},
                )
            return ScriptFileRecord(id="", storage_path=path)

        raise BadRequestError(
            message="File information is missing",
            hint="Send either fileId or storagePath",
        )

    async def _replace_characters(
        self,
        session: BackendSession,
        script_id: str,
        characters: list[AutoIngestCharacter],
    ) -> list[dict[str, Any]]:
        """Delete all characters of the script, then insert the new set.

        Returns:
            Inserted rows joined with their generated ids by position
        """
        rows = [character.to_row(script_id) for character in characters]
        try:
            await session.delete_characters(script_id)
            ids = await session.insert_characters(rows) if rows else []
        except BackendError as e:
            raise PersistenceFailedError(message=e.message) from e

        response: list[dict[str, Any]] = []
        for index, row in enumerate(rows):
            entry = {key: value for key, value in row.items() if key != "script_id"}
            response.append({"id": ids[index] if index < len(ids) else "", **entry})
        return response

    async def _fail_job(
        self, session: BackendSession, job: IngestJob, message: str
    ) -> None:
        job.status = JobStatus.FAILED
        job.error_message = message
        logger.error(
            "Auto-ingest job failed",
            script_id=job.script_id,
            job_id=job.id,
            error=message,
        )
        try:
            await session.update_job(
                job.id, {"status": job.status.value, "error_message": message}
            )
        except BackendError as e:
            logger.error(
                "Could not record job failure", job_id=job.id, error=e.message
            )
