"""LLM integration for Ducktylo."""

from ducktylo.llm.base import BaseLLMProvider
from ducktylo.llm.factory import create_provider
from ducktylo.llm.models import (
    CompletionRequest,
    CompletionResponse,
    LLMProvider,
    ResponseFormat,
    UsageInfo,
)
from ducktylo.llm.providers import OpenAICompatibleProvider

__all__ = [
    "BaseLLMProvider",
    "CompletionRequest",
    "CompletionResponse",
    "LLMProvider",
    "OpenAICompatibleProvider",
    "ResponseFormat",
    "UsageInfo",
    "create_provider",
]
