"""Base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ducktylo.llm.models import CompletionRequest, CompletionResponse, LLMProvider


class BaseLLMProvider(ABC):
    """Base class for LLM providers."""

    provider_type: LLMProvider

    @property
    @abstractmethod
    def has_credentials(self) -> bool:
        """Whether an API key is configured."""

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Generate a chat completion."""

    async def aclose(self) -> None:
        """Release network resources."""
        return None
