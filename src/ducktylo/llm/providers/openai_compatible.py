"""OpenAI-compatible chat-completion provider."""

import json
from typing import Any

import httpx

from ducktylo.config import get_logger
from ducktylo.exceptions import (
    LLMProviderError,
    MalformedIngestResponseError,
    MissingCredentialError,
)
from ducktylo.llm.base import BaseLLMProvider
from ducktylo.llm.models import CompletionRequest, CompletionResponse, LLMProvider

logger = get_logger(__name__)


class OpenAICompatibleProvider(BaseLLMProvider):
    """Chat completions against any OpenAI-compatible endpoint."""

    provider_type = LLMProvider.OPENAI_COMPATIBLE

    def __init__(
        self,
        endpoint: str,
        api_key: str | None,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize OpenAI-compatible provider.

        Args:
            endpoint: API base URL, e.g. ``https://api.openai.com/v1``
            api_key: Bearer key; may be None, checked on each call
            timeout: HTTP request timeout in seconds
            client: Optional preconfigured HTTP client
        """
        self.base_url = endpoint.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

        logger.info(
            "Initialized OpenAI-compatible provider",
            endpoint=self.base_url,
            has_api_key=bool(self.api_key),
            timeout=timeout,
        )

    @property
    def has_credentials(self) -> bool:
        """Whether an API key is configured."""
        return bool(self.api_key)

    async def __aenter__(self) -> "OpenAICompatibleProvider":
        """Enter async context manager."""
        return self

    async def __aexit__(self, *_: Any) -> None:
        """Exit async context manager and cleanup."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Generate completion using the OpenAI-compatible API.

        Raises:
            MissingCredentialError: If no API key is configured
            LLMProviderError: On transport errors or non-200 responses
            MalformedIngestResponseError: If the provider body is not JSON
        """
        if not self.api_key:
            raise MissingCredentialError(
                message="LLM API key is not set",
                hint="Define DUCKTYLO_LLM_API_KEY (or OPENAI_API_KEY)",
            )

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        messages = list(request.messages)
        if request.system:
            messages = [{"role": "system", "content": request.system}, *messages]

        payload: dict[str, Any] = {
            "model": request.model,
            "messages": messages,
            "temperature": request.temperature,
        }
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens
        if request.response_format:
            payload["response_format"] = dict(request.response_format)

        completions_url = f"{self.base_url}/chat/completions"
        logger.info(
            "Sending chat completion request",
            endpoint=completions_url,
            model=request.model,
            message_count=len(messages),
            response_format=payload.get("response_format", {}).get("type"),
        )

        try:
            response = await self.client.post(
                completions_url, headers=headers, json=payload
            )
        except httpx.HTTPError as e:
            logger.error(
                "Chat completion request failed",
                error=str(e),
                error_type=type(e).__name__,
                endpoint=completions_url,
                model=request.model,
            )
            raise LLMProviderError(
                message=f"LLM request failed: {e}",
                details={"endpoint": completions_url, "model": request.model},
            ) from e

        if response.status_code != 200:
            error_text = response.text
            logger.error(
                "Chat completion API error",
                status_code=response.status_code,
                error_text=error_text[:500],
                model=request.model,
            )
            raise LLMProviderError(
                message=f"LLM API error ({response.status_code}): {error_text[:200]}",
                details={"status_code": response.status_code, "model": request.model},
            )

        try:
            data: Any = response.json()
        except json.JSONDecodeError as e:
            raise MalformedIngestResponseError(
                message="LLM provider returned a non-JSON body"
            ) from e
        if not isinstance(data, dict):
            raise MalformedIngestResponseError(
                message="LLM provider returned an unexpected body"
            )

        logger.info(
            "Chat completion successful",
            model=data.get("model", request.model),
            usage=data.get("usage") or {},
        )

        choices = data.get("choices")
        usage = data.get("usage")
        return CompletionResponse(
            id=str(data.get("id") or ""),
            model=str(data.get("model") or request.model),
            choices=choices if isinstance(choices, list) else [],
            usage=usage if isinstance(usage, dict) else {},
            provider=self.provider_type,
            raw=data,
        )
