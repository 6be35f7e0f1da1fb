"""OpenAI-compatible chat-completions provider (OpenAI, Gemini, LM Studio, ...)."""

from __future__ import annotations

import logging

import requests

from bimqa.errors import ConfigurationError
from bimqa.providers.base import LLMProvider

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://api.openai.com/v1"
_DEFAULT_MODEL = "gpt-4o-mini"


class OpenAICompatibleProvider(LLMProvider):
    """Provider that posts to ``<base_url>/chat/completions``.

    Parameters
    ----------
    api_key:
        Bearer token.  Required; a missing key raises
        :class:`~bimqa.errors.ConfigurationError` at construction.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = _DEFAULT_BASE_URL,
        model: str = _DEFAULT_MODEL,
        timeout: float = 120.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY for the chat provider")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._session = session or requests.Session()

    def is_available(self) -> bool:
        return bool(self._api_key)

    def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.2,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> str | None:
        payload: dict = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "top_p": 0.95,
            "max_tokens": max_tokens,
            "stream": False,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            r = self._session.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self._api_key}"},
                json=payload,
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Chat completion failed: %s", exc)
            return None

        return ((data.get("choices") or [{}])[0].get("message") or {}).get("content")
