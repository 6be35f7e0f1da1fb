"""BimQA — the single entry point for ingest and question answering.

Usage::

    from bimqa import BimQA

    qa = BimQA.from_settings()
    qa.ingest_snapshot(urn, elements)
    qa.categories(urn)
    qa.ask(urn, "Có bao nhiêu cửa sổ ở tầng 3?")
    qa.close()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

from bimqa.aps.tokens import DEFAULT_SCOPES, TokenCache, client_credentials_fetcher
from bimqa.chat.catalog import CatalogCache, CatalogSnapshot
from bimqa.chat.pipeline import ChatPipeline, ChatResponse
from bimqa.embeddings.base import EmbeddingProvider
from bimqa.embeddings.openai import OpenAIEmbeddingProvider
from bimqa.errors import ConfigurationError
from bimqa.ingest.pipeline import IngestResult, Ingestor
from bimqa.models.element import Attribute, ElementRow
from bimqa.providers import InferenceClient, provider_from_settings
from bimqa.settings import Settings, configure_logging, load_settings
from bimqa.store.database import ElementStore

logger = logging.getLogger(__name__)


class BimQA:
    """The public interface of the package.

    Parameters
    ----------
    store:
        Element store, or a database path to open one at.
    client:
        Inference client used for every model-backed step.
    embedder:
        Optional embedding provider; without one, ingest stores no
        vectors and questions are answered without semantic narrowing.
    catalog_ttl:
        Seconds a partition catalog is reused (0 disables caching).
    tokens:
        Optional :class:`TokenCache` for the model-hosting service.
    """

    def __init__(
        self,
        store: ElementStore | str | Path,
        client: InferenceClient,
        *,
        embedder: EmbeddingProvider | None = None,
        catalog_ttl: float = 0.0,
        tokens: TokenCache | None = None,
    ) -> None:
        self.store = store if isinstance(store, ElementStore) else ElementStore(store)
        self.client = client
        self.embedder = embedder
        self.tokens = tokens
        self.catalog_cache = CatalogCache(self.store, ttl=catalog_ttl)
        self.ingestor = Ingestor(self.store, embedder=embedder)
        self.pipeline = ChatPipeline(
            self.store, client, embedder=embedder, catalog_cache=self.catalog_cache,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        project_path: str | Path | None = None,
    ) -> BimQA:
        """Build a fully wired instance from :func:`load_settings`.

        The embedding provider and the token cache are only set up when
        their credentials are configured.
        """
        settings = settings or load_settings(project_path)
        configure_logging(settings.log_level)

        client = InferenceClient(provider_from_settings(settings))

        embedder = None
        if settings.openai_api_key:
            embedder = OpenAIEmbeddingProvider(
                settings.openai_api_key,
                base_url=settings.openai_base_url,
                model=settings.embedding_model,
                dimensions=settings.embedding_dimensions,
            )
        else:
            logger.info("OPENAI_API_KEY not set; semantic search disabled")

        tokens = None
        if settings.aps_client_id and settings.aps_client_secret:
            tokens = TokenCache(
                client_credentials_fetcher(settings.aps_client_id, settings.aps_client_secret),
            )

        return cls(
            settings.db_path,
            client,
            embedder=embedder,
            catalog_ttl=settings.catalog_ttl,
            tokens=tokens,
        )

    # -- Ingest ---------------------------------------------------------------

    def ingest_snapshot(
        self,
        urn: str,
        elements: list[dict[str, Any]],
        *,
        guid: str | None = None,
    ) -> IngestResult:
        """Replace partition *urn* with viewer snapshot records."""
        result = self.ingestor.ingest(urn, elements, guid=guid)
        self.catalog_cache.invalidate(urn)
        return result

    def ingest_properties(
        self,
        urn: str,
        collection: list[dict[str, Any]],
        *,
        guid: str,
    ) -> IngestResult:
        """Replace partition *urn* with Model Derivative property records."""
        result = self.ingestor.ingest_properties(urn, collection, guid=guid)
        self.catalog_cache.invalidate(urn)
        return result

    def begin_snapshot(self, urn: str) -> int:
        self.catalog_cache.invalidate(urn)
        return self.ingestor.begin_snapshot(urn)

    def add_snapshot_chunk(
        self,
        urn: str,
        elements: list[dict[str, Any]],
        *,
        guid: str | None = None,
    ) -> IngestResult:
        return self.ingestor.add_snapshot_chunk(urn, elements, guid=guid)

    def finish_snapshot(self, urn: str) -> int:
        self.catalog_cache.invalidate(urn)
        return self.ingestor.finish_snapshot(urn)

    # -- Questions --------------------------------------------------------------

    def ask(self, urn: str, question: str, *, debug: bool = False) -> ChatResponse:
        """Answer *question* about partition *urn*."""
        return self.pipeline.ask(urn, question, debug=debug)

    # -- Browsing --------------------------------------------------------------

    def categories(self, urn: str, *, mode: str = "type") -> list[str]:
        return self.store.categories(urn, mode=mode)

    def distinct_values(
        self,
        urn: str,
        attr: Attribute | str,
        *,
        category: str | None = None,
        contains: str | None = None,
        limit: int = 50,
    ) -> list[str]:
        """Distinct values of *attr*; *attr* may be given by name."""
        if not isinstance(attr, Attribute):
            # Unknown names fall through and are rejected by the store
            attr = Attribute.parse(attr) or attr
        return self.store.distinct_values(urn, attr, category=category, contains=contains, limit=limit)

    def search(self, urn: str, text: str, *, limit: int = 20) -> list[ElementRow]:
        """Full-text search over element names, categories and locations."""
        return self.store.search_text(urn, text, limit=limit)

    def catalog(self, urn: str) -> CatalogSnapshot:
        return self.catalog_cache.get(urn)

    # -- Credentials -------------------------------------------------------------

    def access_token(self, scopes: Iterable[str] = DEFAULT_SCOPES) -> str:
        """Two-legged token for the model-hosting service."""
        if self.tokens is None:
            raise ConfigurationError("Missing APS_CLIENT_ID, APS_CLIENT_SECRET")
        return self.tokens.get(scopes)

    def close(self) -> None:
        self.store.close()
