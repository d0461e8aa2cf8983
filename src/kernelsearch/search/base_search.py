"""Abstract text search interface and the backend contracts it consumes.

Defines the minimal surface for search backends (vector stores, keyword
indexes), enabling extensibility and testability via a common contract.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, Sequence, TypeVar

from kernelsearch.search.options import TextSearchOptions, VectorSearchOptions
from kernelsearch.search.results import KernelSearchResults, TextSearchResult, VectorSearchResults

TRecord = TypeVar("TRecord")


class VectorizedSearch(Protocol[TRecord]):
    """A backend that can search its records by vector similarity."""

    async def vectorized_search(
        self,
        vector: Sequence[float],
        options: VectorSearchOptions,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> VectorSearchResults[TRecord]:
        """Open a lazy result stream for the given vector.

        Must raise `QueryTranslationError` before returning when `options`
        holds a filter the backend cannot express.
        """
        ...


class TextSearch(ABC):
    """Abstract interface for text search implementations.

    Each operation returns a lazy, single-pass `KernelSearchResults`.
    """

    @abstractmethod
    async def search(
        self,
        query: str,
        options: Optional[TextSearchOptions] = None,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> KernelSearchResults[str]:
        """Search and return each result as a string."""
        raise NotImplementedError

    @abstractmethod
    async def get_text_search_results(
        self,
        query: str,
        options: Optional[TextSearchOptions] = None,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> KernelSearchResults[TextSearchResult]:
        """Search and return each result as a `TextSearchResult`."""
        raise NotImplementedError

    @abstractmethod
    async def get_search_results(
        self,
        query: str,
        options: Optional[TextSearchOptions] = None,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> KernelSearchResults[Any]:
        """Search and return the backend records unchanged."""
        raise NotImplementedError
