"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ducktylo import __version__
from ducktylo.api.v1.api import api_router
from ducktylo.backend import BackendService, create_backend
from ducktylo.config import DucktyloSettings, get_logger, get_settings
from ducktylo.exceptions import IngestError
from ducktylo.ingest.client import AutoIngestClient
from ducktylo.ingest.models import JobStatus
from ducktylo.ingest.orchestrator import IngestOrchestrator
from ducktylo.ingest.text_extractor import TextExtractor
from ducktylo.llm import BaseLLMProvider, create_provider

logger = get_logger(__name__)


def error_response(error: IngestError) -> JSONResponse:
    """Render a pipeline error in the API's failure shape."""
    content: dict[str, Any] = {
        "status": JobStatus.FAILED.value,
        "error": error.message,
    }
    if error.job_id:
        content["job"] = {"id": error.job_id, "status": JobStatus.FAILED.value}
    return JSONResponse(status_code=error.status_code, content=content)


def create_app(
    settings: DucktyloSettings | None = None,
    backend: BackendService | None = None,
    provider: BaseLLMProvider | None = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Settings to use, defaults to the global settings
        backend: Prebuilt backend, otherwise created from settings at startup
        provider: Prebuilt LLM provider, otherwise created from settings

    Returns:
        Configured application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build process-wide collaborators once and release them on shutdown."""
        logger.info("Starting Ducktylo API", backend=settings.backend)
        app_backend = backend or create_backend(settings)
        app_provider = provider or create_provider(settings)

        app.state.settings = settings
        app.state.backend = app_backend
        app.state.orchestrator = IngestOrchestrator(
            backend=app_backend,
            client=AutoIngestClient(app_provider, settings),
            extractor=TextExtractor(),
        )

        yield

        logger.info("Shutting down Ducktylo API")
        if backend is None:
            await app_backend.close()
        if provider is None:
            await app_provider.aclose()

    app = FastAPI(
        title="Ducktylo API",
        description="Screenplay auto-ingest service",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(IngestError)
    async def ingest_error_handler(request: Request, exc: IngestError) -> JSONResponse:
        """Turn pipeline errors into failure responses."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "Request failed",
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.message,
            error_type=type(exc).__name__,
            job_id=exc.job_id,
        )
        return error_response(exc)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Render any other failure in the same shape as a 500."""
        logger.exception(
            "Unhandled error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return error_response(IngestError(message=str(exc) or type(exc).__name__))

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
