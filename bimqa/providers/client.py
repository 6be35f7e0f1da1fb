"""InferenceClient — structured (JSON) and free-text inference over a provider."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from tenacity import retry, retry_if_exception_type, stop_after_attempt

from bimqa.config import (
    MAX_OUTPUT_TOKENS,
    STRUCTURED_MAX_RETRIES,
    STRUCTURED_TEMPERATURE,
    TEXT_TEMPERATURE,
)
from bimqa.errors import InferenceServiceError
from bimqa.providers.base import LLMProvider

logger = logging.getLogger(__name__)

_JSON_ONLY = "IMPORTANT: Return ONLY valid JSON. No markdown, no code fences, no comments."

_FENCE_OPEN = re.compile(r"^\s*```(?:json)?\s*", re.I)
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


class _AttemptFailed(Exception):
    """One structured attempt produced no usable JSON."""


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text)).strip()


class InferenceClient:
    """Wraps an :class:`LLMProvider` with JSON parsing and bounded retries.

    Parameters
    ----------
    provider:
        The text-generation backend.
    max_retries:
        Extra attempts for :meth:`infer_structured` after the first one.
    """

    def __init__(self, provider: LLMProvider, *, max_retries: int = STRUCTURED_MAX_RETRIES) -> None:
        self.provider = provider
        self.max_retries = max_retries

    def _attempt_structured(self, full_prompt: str, temperature: float, max_tokens: int) -> Any:
        raw = self.provider.generate(
            full_prompt, temperature=temperature, max_tokens=max_tokens, json_mode=True,
        )
        if raw is None:
            logger.debug("Structured inference attempt: no response")
            raise _AttemptFailed("provider returned no response")
        try:
            return json.loads(strip_code_fences(raw))
        except json.JSONDecodeError as exc:
            logger.debug("Structured inference attempt: invalid JSON %r", raw[:200])
            raise _AttemptFailed(f"unparseable output: {exc}") from exc

    def infer_structured(
        self,
        prompt: str,
        *,
        temperature: float = STRUCTURED_TEMPERATURE,
        max_tokens: int = MAX_OUTPUT_TOKENS,
    ) -> Any:
        """Return the parsed JSON value the model produced for *prompt*.

        Raises :class:`InferenceServiceError` once all attempts failed.
        """
        full_prompt = f"{prompt}\n\n{_JSON_ONLY}"
        attempts = self.max_retries + 1
        attempt = retry(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception_type(_AttemptFailed),
            reraise=True,
        )(self._attempt_structured)
        try:
            return attempt(full_prompt, temperature, max_tokens)
        except _AttemptFailed as exc:
            raise InferenceServiceError(
                f"Structured inference failed after {attempts} attempts ({exc})"
            ) from exc

    def infer_text(self, prompt: str, *, temperature: float = TEXT_TEMPERATURE) -> str:
        """Return free-form text for *prompt*.  No retry."""
        raw = self.provider.generate(prompt, temperature=temperature, max_tokens=MAX_OUTPUT_TOKENS)
        if raw is None:
            raise InferenceServiceError("Text inference failed: provider returned no response")
        return raw.strip()
