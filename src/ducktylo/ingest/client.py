"""LLM-backed metadata extraction for a single screenplay."""

from __future__ import annotations

from ducktylo.config import DucktyloSettings, get_logger, get_settings
from ducktylo.exceptions import MissingCredentialError
from ducktylo.ingest.models import AutoIngestResult
from ducktylo.ingest.prompts import SYSTEM_PROMPT, build_user_prompt, truncate_script
from ducktylo.ingest.response_parser import extract_json_object, map_ingest_payload
from ducktylo.llm.base import BaseLLMProvider
from ducktylo.llm.models import CompletionRequest

logger = get_logger(__name__)


class AutoIngestClient:
    """Runs one structured-extraction call and normalizes the answer."""

    def __init__(
        self,
        provider: BaseLLMProvider,
        settings: DucktyloSettings | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            provider: Chat-completion provider, shared for the process
            settings: Settings supplying model, temperature and text budget
        """
        self.provider = provider
        self.settings = settings or get_settings()

    @property
    def model(self) -> str:
        """Model name used for auto-ingest."""
        return self.settings.llm_model

    async def run_auto_ingest(self, script_text: str) -> AutoIngestResult:
        """Extract structured metadata from screenplay text.

        Args:
            script_text: Plain text of the screenplay

        Returns:
            Normalized AutoIngestResult with token usage and raw response

        Raises:
            MissingCredentialError: If no API key is configured
            LLMProviderError: If the provider call fails
            MalformedIngestResponseError: If the answer is not a JSON object
        """
        if not self.provider.has_credentials:
            raise MissingCredentialError(
                message="LLM API key is not set",
                hint="Define DUCKTYLO_LLM_API_KEY (or OPENAI_API_KEY)",
            )

        text, truncated = truncate_script(script_text, self.settings.ingest_max_chars)
        if truncated:
            logger.info(
                "Truncated script text for auto-ingest",
                original_length=len(script_text),
                max_chars=self.settings.ingest_max_chars,
            )

        request = CompletionRequest(
            model=self.model,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": build_user_prompt(text)}],
            temperature=self.settings.llm_temperature,
            response_format={"type": "json_object"},
        )

        response = await self.provider.complete(request)
        payload = extract_json_object(response.content)
        result = map_ingest_payload(
            payload,
            model=self.model,
            usage=response.usage,
            raw_response=response.raw,
        )

        logger.info(
            "Auto-ingest completed",
            model=self.model,
            prompt_tokens=result.prompt_tokens,
            completion_tokens=result.completion_tokens,
            character_count=len(result.characters),
            genres=result.genres,
        )
        return result
