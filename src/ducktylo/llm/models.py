"""Data models for LLM integration."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field
from typing_extensions import TypedDict


class LLMProvider(str, Enum):
    """Available LLM providers."""

    OPENAI_COMPATIBLE = "openai_compatible"


class UsageInfo(TypedDict, total=False):
    """Token usage information."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ResponseFormat(TypedDict, total=False):
    """Response format requested from the completion endpoint."""

    type: str  # e.g., "json_object", "text"


class CompletionRequest(BaseModel):
    """Request for chat completion."""

    model: str
    messages: list[dict[str, str]]
    temperature: float = 0.2
    max_tokens: int | None = None
    system: str | None = None
    response_format: ResponseFormat | None = None


class CompletionResponse(BaseModel):
    """Response from chat completion."""

    id: str
    model: str
    choices: list[Any] = Field(default_factory=list)
    usage: dict[str, Any] = Field(default_factory=dict)
    provider: LLMProvider
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def content(self) -> Any:
        """Content of the first choice message, or None when absent.

        The value is returned as sent by the provider; callers decide what a
        non-string means.
        """
        if not self.choices:
            return None
        first = self.choices[0]
        if not isinstance(first, dict):
            return None
        message = first.get("message")
        if not isinstance(message, dict):
            return None
        return message.get("content")
