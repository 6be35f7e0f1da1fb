"""Abstract embedding provider interface."""

from __future__ import annotations

import abc


class EmbeddingProvider(abc.ABC):
    """Turns text into fixed-length numeric vectors."""

    model: str = ""

    @abc.abstractmethod
    def embed_many(self, texts: list[str]) -> list[list[float] | None]:
        """Embed *texts*; the result is aligned by index.

        Empty or non-string inputs yield *None* at their position.
        Raises :class:`~bimqa.errors.InferenceServiceError` on provider
        failure.
        """

    def embed(self, text: str) -> list[float] | None:
        """Embed a single text, or return *None* if it is empty."""
        if not isinstance(text, str) or not text.strip():
            return None
        return self.embed_many([text])[0]
