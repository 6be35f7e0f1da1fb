"""LLM provider system — abstract base, concrete providers, and the inference client."""

from __future__ import annotations

from bimqa.errors import ConfigurationError
from bimqa.providers.base import LLMProvider
from bimqa.providers.client import InferenceClient
from bimqa.providers.ollama import OllamaProvider
from bimqa.providers.openai_compat import OpenAICompatibleProvider
from bimqa.settings import Settings

__all__ = [
    "InferenceClient",
    "LLMProvider",
    "OllamaProvider",
    "OpenAICompatibleProvider",
    "provider_from_settings",
]


def provider_from_settings(settings: Settings) -> LLMProvider:
    """Build the provider selected by ``BIMQA_LLM_PROVIDER``."""
    if settings.llm_provider == "ollama":
        return OllamaProvider(base_url=settings.ollama_host, model=settings.ollama_model)
    if settings.llm_provider == "openai":
        return OpenAICompatibleProvider(
            settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.openai_chat_model,
        )
    raise ConfigurationError(f"Unknown LLM provider {settings.llm_provider!r}")
