"""Custom exception hierarchy for kernelsearch.

These exceptions allow callers to discriminate error categories
and handle them appropriately while preserving the original context.
In particular a broken backend (`BackendError`) can be told apart from a
record that did not match the expected shape (`MappingError`).
"""

from __future__ import annotations

from typing import Any, Optional


class KernelSearchError(Exception):
    """Base class for all kernelsearch exceptions."""


class ConfigurationError(KernelSearchError):
    """Raised when a required capability is missing or invalid."""


class QueryTranslationError(KernelSearchError):
    """Raised when search options cannot be expressed by the backend."""


class EmbeddingError(KernelSearchError):
    """Raised when the query embedding could not be generated."""


class BackendError(KernelSearchError):
    """Raised when the search backend fails while results are being pulled."""


class MappingError(KernelSearchError):
    """Raised when a record cannot be converted to the requested output shape."""

    def __init__(self, message: str, *, record: Any = None, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.record = record
        self.position = position


class ResultsConsumedError(KernelSearchError):
    """Raised when a single-pass result set is iterated a second time."""
