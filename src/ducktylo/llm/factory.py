"""Factory for the process-wide LLM provider."""

from __future__ import annotations

from ducktylo.config import DucktyloSettings, get_logger
from ducktylo.llm.base import BaseLLMProvider
from ducktylo.llm.providers import OpenAICompatibleProvider

logger = get_logger(__name__)


def create_provider(settings: DucktyloSettings) -> BaseLLMProvider:
    """Create the LLM provider described by settings.

    A missing API key is not an error here; it surfaces on the first
    completion so the failure is recorded against the ingest job.

    Args:
        settings: Application settings

    Returns:
        Configured provider instance
    """
    if not settings.llm_api_key:
        logger.warning("LLM API key not configured; auto-ingest calls will fail")
    return OpenAICompatibleProvider(
        endpoint=settings.llm_endpoint,
        api_key=settings.llm_api_key,
        timeout=settings.llm_timeout,
    )
