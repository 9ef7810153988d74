"""Manual character entry endpoint."""

from typing import Any

from fastapi import APIRouter, Depends, Request

from ducktylo.api.v1.dependencies import (
    bearer_token,
    get_orchestrator,
    read_body,
)
from ducktylo.api.v1.schemas import SaveCharactersRequestBody
from ducktylo.ingest.models import JobStatus
from ducktylo.ingest.orchestrator import IngestOrchestrator

router = APIRouter()


@router.put("/{script_id}/characters")
async def save_characters(
    script_id: str,
    request: Request,
    orchestrator: IngestOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Replace a script's characters with the submitted list."""
    body = await read_body(request, SaveCharactersRequestBody)
    access_token = bearer_token(request)
    characters = await orchestrator.save_characters(
        access_token,
        script_id,
        [character.to_character() for character in body.characters],
    )
    return {"status": JobStatus.SUCCEEDED.value, "characters": characters}
