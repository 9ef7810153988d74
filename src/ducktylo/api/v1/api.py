"""Main API v1 router."""

from fastapi import APIRouter

from ducktylo.api.v1.endpoints import characters, ingest

api_router = APIRouter()

api_router.include_router(ingest.router, prefix="/ai", tags=["ai"])
api_router.include_router(characters.router, prefix="/scripts", tags=["scripts"])
