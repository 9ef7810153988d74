"""Ducktylo HTTP API.

- create_app: FastAPI application factory
- lifespan: builds the backend, LLM provider and orchestrator once
"""

from ducktylo.api.app import create_app as create_app

__all__ = ["create_app"]
