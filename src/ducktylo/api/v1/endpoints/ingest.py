"""Auto-ingest endpoint."""

from typing import Any

from fastapi import APIRouter, Depends, Request

from ducktylo.api.v1.dependencies import (
    bearer_token,
    get_orchestrator,
    read_body,
)
from ducktylo.api.v1.schemas import AutoIngestRequestBody
from ducktylo.config import get_logger
from ducktylo.ingest.orchestrator import IngestOrchestrator

logger = get_logger(__name__)
router = APIRouter()


@router.post("/auto-ingest")
async def auto_ingest(
    request: Request,
    orchestrator: IngestOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Extract metadata and characters from an uploaded script file.

    Failures are rendered by the app's ``IngestError`` handler.
    """
    body = await read_body(request, AutoIngestRequestBody)
    access_token = bearer_token(request)
    logger.info(
        "Auto-ingest requested",
        script_id=body.script_id,
        has_file_id=body.file_id is not None,
    )
    outcome = await orchestrator.run(access_token, body.to_request())
    return outcome.to_response()
