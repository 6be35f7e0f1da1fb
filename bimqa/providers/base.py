"""Abstract LLM provider interface."""

from __future__ import annotations

import abc


class LLMProvider(abc.ABC):
    """Base class for text-generation backends.

    Implementations must override :meth:`generate`, which sends a prompt
    and returns the raw completion text, or *None* on failure.
    """

    @abc.abstractmethod
    def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.2,
        max_tokens: int = 2048,
        json_mode: bool = False,
    ) -> str | None:
        """Send *prompt* to the model and return the response text.

        Returns *None* if the provider is unavailable or the call fails;
        the caller decides whether to retry or raise.
        """

    @abc.abstractmethod
    def is_available(self) -> bool:
        """Return *True* if the provider is ready to serve requests."""
