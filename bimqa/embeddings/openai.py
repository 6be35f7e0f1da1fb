"""OpenAI-compatible embeddings endpoint, batched."""

from __future__ import annotations

import logging
import time

import requests

from bimqa.config import (
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_EMBEDDING_MODEL,
    EMBED_BATCH_DELAY_S,
    EMBED_BATCH_SIZE,
)
from bimqa.embeddings.base import EmbeddingProvider
from bimqa.errors import ConfigurationError, InferenceServiceError

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Calls ``<base_url>/embeddings`` in batches of *batch_size* texts.

    A short pause between batches keeps bulk ingest under provider
    rate limits.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://api.openai.com/v1",
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: int | None = DEFAULT_EMBEDDING_DIMENSIONS,
        batch_size: int = EMBED_BATCH_SIZE,
        batch_delay: float = EMBED_BATCH_DELAY_S,
        timeout: float = 120.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY for the embedding provider")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.dimensions = dimensions
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay
        self.timeout = timeout
        self._session = session or requests.Session()

    def _post(self, batch: list[str]) -> list[list[float]]:
        payload: dict = {"model": self.model, "input": batch}
        if self.dimensions:
            payload["dimensions"] = self.dimensions
        try:
            r = self._session.post(
                f"{self.base_url}/embeddings",
                headers={"Authorization": f"Bearer {self._api_key}"},
                json=payload,
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()["data"]
            # The API may return items out of order; "index" is authoritative
            ordered = sorted(data, key=lambda item: item.get("index", 0))
            return [[float(x) for x in item["embedding"]] for item in ordered]
        except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise InferenceServiceError(f"Embedding request failed: {exc}") from exc

    def embed_many(self, texts: list[str]) -> list[list[float] | None]:
        out: list[list[float] | None] = [None] * len(texts)
        valid = [
            (i, t.strip()) for i, t in enumerate(texts)
            if isinstance(t, str) and t.strip()
        ]
        if not valid:
            logger.warning("embed_many: no valid texts provided")
            return out

        for start in range(0, len(valid), self.batch_size):
            chunk = valid[start:start + self.batch_size]
            logger.debug(
                "Embedding %d-%d of %d", start + 1, start + len(chunk), len(valid),
            )
            vectors = self._post([t for _, t in chunk])
            for (idx, _), vec in zip(chunk, vectors):
                out[idx] = vec
            if start + self.batch_size < len(valid) and self.batch_delay > 0:
                time.sleep(self.batch_delay)

        logger.info("Generated %d embeddings", len(valid))
        return out
