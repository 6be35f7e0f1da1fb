"""BIM QA — natural-language questions over a flat BIM element table."""

__version__ = "1.0.0"

from bimqa.api.facade import BimQA
from bimqa.chat.catalog import CatalogCache, CatalogSnapshot, build_catalog
from bimqa.chat.pipeline import ChatPipeline, ChatResponse
from bimqa.chat.plan import QueryPlan, Task
from bimqa.errors import (
    BimQAError,
    ConfigurationError,
    DataNotReadyError,
    InferenceServiceError,
    QueryConstructionError,
    ValidationError,
)
from bimqa.ingest.pipeline import IngestResult, Ingestor
from bimqa.models.element import Attribute, ElementRow, PropertyMap
from bimqa.settings import Settings, load_settings
from bimqa.store.database import ElementStore

__all__ = [
    "Attribute",
    "BimQA",
    "BimQAError",
    "CatalogCache",
    "CatalogSnapshot",
    "ChatPipeline",
    "ChatResponse",
    "ConfigurationError",
    "DataNotReadyError",
    "ElementRow",
    "ElementStore",
    "IngestResult",
    "Ingestor",
    "InferenceServiceError",
    "PropertyMap",
    "QueryConstructionError",
    "QueryPlan",
    "Settings",
    "Task",
    "ValidationError",
    "build_catalog",
    "load_settings",
]
