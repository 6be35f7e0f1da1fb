"""Exception hierarchy for the question-resolution pipeline."""

from __future__ import annotations


class BimQAError(Exception):
    """Base class for all bimqa errors."""


class ConfigurationError(BimQAError):
    """Raised when a capability is used without its required credentials."""


class InferenceServiceError(BimQAError):
    """Raised when the inference, embedding or token service fails.

    Covers transport errors as well as output that could not be parsed
    after the bounded number of retries.
    """


class ValidationError(BimQAError):
    """Raised when a request is missing a required field (urn, question)."""


class DataNotReadyError(BimQAError):
    """Raised when the requested partition has no rows yet."""

    def __init__(self, urn: str) -> None:
        super().__init__(f"No elements ingested for urn {urn!r}")
        self.urn = urn


class QueryConstructionError(BimQAError):
    """Raised when a plan lacks a field its task requires."""
