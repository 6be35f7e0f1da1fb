"""Ingest — turn viewer property payloads into element rows."""

from bimqa.ingest.pipeline import IngestResult, Ingestor, build_row

__all__ = ["IngestResult", "Ingestor", "build_row"]
