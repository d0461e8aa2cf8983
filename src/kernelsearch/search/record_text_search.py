"""Shared projection machinery for record-backed text search.

`RecordTextSearch` runs the backend query once per call and wraps the lazy
record stream in an async generator that applies the projection selected by
the operation: string, `TextSearchResult`, or the record itself. Subclasses
only decide how the backend is queried (`_execute_search`).
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import Any, AsyncIterator, Callable, Dict, Generic, Optional, TypeVar

from kernelsearch.exceptions import (
    BackendError,
    ConfigurationError,
    KernelSearchError,
    MappingError,
)
from kernelsearch.search.base_search import TextSearch
from kernelsearch.search.mappers import as_result_mapper, as_string_mapper
from kernelsearch.search.options import TextSearchOptions
from kernelsearch.search.results import KernelSearchResults, TextSearchResult, VectorSearchResults

logger = logging.getLogger(__name__)

TRecord = TypeVar("TRecord")
T = TypeVar("T")


def _is_cancelled(cancellation: Optional[asyncio.Event]) -> bool:
    return cancellation is not None and cancellation.is_set()


def _identity(record: Any) -> Any:
    return record


async def _empty() -> AsyncIterator[Any]:
    return
    yield


class RecordTextSearch(TextSearch, Generic[TRecord]):
    """Text search over a backend that yields `VectorSearchResult` streams.

    Parameters
    ----------
    string_mapper:
        Callable (or mapper object) turning a record into a string. Required
        by `search()` only.
    result_mapper:
        Callable (or mapper object) turning a record into a
        `TextSearchResult`. Required by `get_text_search_results()` only.
    default_options:
        Options used when a call passes none.
    """

    def __init__(
        self,
        *,
        string_mapper: Any = None,
        result_mapper: Any = None,
        default_options: Optional[TextSearchOptions] = None,
    ) -> None:
        self._string_mapper = as_string_mapper(string_mapper) if string_mapper is not None else None
        self._result_mapper = as_result_mapper(result_mapper) if result_mapper is not None else None
        self._default_options = default_options or TextSearchOptions()

    @abstractmethod
    async def _execute_search(
        self,
        query: str,
        options: TextSearchOptions,
        cancellation: Optional[asyncio.Event],
    ) -> VectorSearchResults[TRecord]:
        """Query the backend and return its lazy result stream."""
        raise NotImplementedError

    async def search(
        self,
        query: str,
        options: Optional[TextSearchOptions] = None,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> KernelSearchResults[str]:
        if self._string_mapper is None:
            raise ConfigurationError("A string mapper is required to return string results")
        return await self._run(query, options, self._string_mapper, cancellation)

    async def get_text_search_results(
        self,
        query: str,
        options: Optional[TextSearchOptions] = None,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> KernelSearchResults[TextSearchResult]:
        if self._result_mapper is None:
            raise ConfigurationError("A result mapper is required to return text search results")
        return await self._run(query, options, self._result_mapper, cancellation)

    async def get_search_results(
        self,
        query: str,
        options: Optional[TextSearchOptions] = None,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> KernelSearchResults[TRecord]:
        return await self._run(query, options, _identity, cancellation)

    async def _run(
        self,
        query: str,
        options: Optional[TextSearchOptions],
        project: Callable[[TRecord], T],
        cancellation: Optional[asyncio.Event],
    ) -> KernelSearchResults[T]:
        options = options or self._default_options
        if _is_cancelled(cancellation):
            logger.debug("Text search cancelled before the query was issued")
            return KernelSearchResults(_empty(), total_count=None)
        logger.debug(
            "Text search: query_len=%d offset=%d count=%d filter=%s",
            len(query or ""),
            options.offset,
            options.count,
            bool(options.filter),
        )
        try:
            response = await self._execute_search(query, options, cancellation)
        except KernelSearchError:
            raise
        except Exception as exc:
            raise BackendError(f"Search backend failed to start the query: {exc}") from exc

        total_count = response.total_count if options.include_total_count else None
        return KernelSearchResults(
            self._project(response, project, cancellation),
            total_count=total_count,
            metadata=self._results_metadata(response),
        )

    def _results_metadata(self, response: VectorSearchResults[TRecord]) -> Dict[str, Any]:
        """Metadata attached to the result set; backend diagnostics pass through as-is."""
        return dict(response.metadata)

    async def _project(
        self,
        response: VectorSearchResults[TRecord],
        project: Callable[[TRecord], T],
        cancellation: Optional[asyncio.Event],
    ) -> AsyncIterator[T]:
        stream = response.results
        position = 0
        try:
            while not _is_cancelled(cancellation):
                try:
                    item = await stream.__anext__()
                except StopAsyncIteration:
                    logger.debug("Text search stream ended after %d results", position)
                    return
                except KernelSearchError:
                    raise
                except Exception as exc:
                    logger.debug("Search backend failed after %d results: %s", position, exc)
                    raise BackendError(f"Search backend failed while paging: {exc}") from exc

                # Cancellation may arrive while the pull was suspended
                if _is_cancelled(cancellation):
                    break
                try:
                    value = project(item.record)
                except Exception as exc:
                    logger.warning("Could not map search result at position %d: %s", position, exc)
                    raise MappingError(
                        f"Could not map search result at position {position}: {exc}",
                        record=item.record,
                        position=position,
                    ) from exc
                yield value
                position += 1
            logger.debug("Text search cancelled after %d results", position)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
