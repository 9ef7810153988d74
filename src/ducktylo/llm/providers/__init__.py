"""LLM provider implementations."""

from ducktylo.llm.providers.openai_compatible import OpenAICompatibleProvider

__all__ = ["OpenAICompatibleProvider"]
