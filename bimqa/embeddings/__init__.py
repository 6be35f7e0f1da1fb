"""Embedding providers and element text rendering."""

from bimqa.embeddings.base import EmbeddingProvider
from bimqa.embeddings.openai import OpenAIEmbeddingProvider
from bimqa.embeddings.text import build_embedding_text

__all__ = ["EmbeddingProvider", "OpenAIEmbeddingProvider", "build_embedding_text"]
