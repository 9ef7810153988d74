"""Shared request dependencies for v1 endpoints."""

from __future__ import annotations

import json
from typing import TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from ducktylo.exceptions import BadRequestError, UnauthenticatedError
from ducktylo.ingest.orchestrator import IngestOrchestrator

ModelT = TypeVar("ModelT", bound=BaseModel)


async def get_orchestrator(request: Request) -> IngestOrchestrator:
    """Get the orchestrator from app state."""
    orchestrator: IngestOrchestrator = request.app.state.orchestrator
    return orchestrator


def bearer_token(request: Request) -> str:
    """Extract the bearer token from the Authorization header.

    Called after the body is validated, so a malformed body is reported
    before a missing session.

    Raises:
        UnauthenticatedError: If the header is missing or not a bearer token
    """
    authorization = request.headers.get("authorization")
    if not authorization:
        raise UnauthenticatedError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError()
    return token.strip()


async def read_body(request: Request, model: type[ModelT]) -> ModelT:
    """Parse and validate a JSON body.

    Validation happens here instead of in FastAPI's body binding so that a
    malformed body is reported as 400 in the API's own error shape.

    Raises:
        BadRequestError: If the body is not JSON or fails validation
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequestError(message="Request body must be valid JSON") from e

    if not isinstance(payload, dict):
        raise BadRequestError(message="Request body must be a JSON object")

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in e.errors()
        )
        raise BadRequestError(
            message=f"Invalid request body: {problems}",
            details={"errors": len(e.errors())},
        ) from e
