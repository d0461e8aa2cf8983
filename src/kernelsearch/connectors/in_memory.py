"""In-memory vector store connector.

Keeps records and their vectors in process memory and ranks them by cosine
similarity with numpy. Results are paged out lazily, `page_size` records per
simulated round trip, so callers can observe the same pull-driven paging a
remote vector database would show.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, AsyncIterator, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np

from kernelsearch.exceptions import QueryTranslationError
from kernelsearch.search.options import EqualToFilterClause, TextSearchFilter, VectorSearchOptions
from kernelsearch.search.results import VectorSearchResult, VectorSearchResults

logger = logging.getLogger(__name__)

TRecord = TypeVar("TRecord")

_MISSING = object()


def _field_value(record: Any, field_name: str) -> Any:
    if isinstance(record, dict):
        return record.get(field_name, _MISSING)
    return getattr(record, field_name, _MISSING)


class InMemoryVectorStore(Generic[TRecord]):
    """Vector store holding `(record, vector)` pairs in memory.

    Parameters
    ----------
    page_size: int
        Number of records delivered per page fetch.
    """

    def __init__(self, *, page_size: int = 10) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.page_size = page_size
        self.fetch_count = 0
        self._records: List[Tuple[TRecord, np.ndarray]] = []
        self._dimensions: Optional[int] = None

    def __len__(self) -> int:
        return len(self._records)

    def upsert(self, record: TRecord, vector: Sequence[float]) -> None:
        """Add a record with its embedding vector."""
        arr = np.asarray(vector, dtype=np.float32)
        if arr.ndim != 1 or arr.size == 0:
            raise ValueError("vector must be a non-empty 1-D sequence of floats")
        if self._dimensions is None:
            self._dimensions = int(arr.size)
        elif arr.size != self._dimensions:
            raise ValueError(f"Expected {self._dimensions} dimensions, got {arr.size}")
        self._records.append((record, arr))

    def upsert_batch(self, items: Iterable[Tuple[TRecord, Sequence[float]]]) -> None:
        for record, vector in items:
            self.upsert(record, vector)

    def _translate_filter(self, flt: Optional[TextSearchFilter]) -> List[EqualToFilterClause]:
        if not flt:
            return []
        clauses: List[EqualToFilterClause] = []
        for clause in flt.clauses:
            if not isinstance(clause, EqualToFilterClause):
                raise QueryTranslationError(
                    f"Filter clause {type(clause).__name__} is not supported by the in-memory store"
                )
            clauses.append(clause)
        return clauses

    def _rank(
        self, query: np.ndarray, clauses: List[EqualToFilterClause]
    ) -> List[Tuple[TRecord, float]]:
        q_norm = float(np.linalg.norm(query))
        ranked: List[Tuple[TRecord, float]] = []
        for record, vec in self._records:
            if any(_field_value(record, c.field_name) != c.value for c in clauses):
                continue
            denom = q_norm * float(np.linalg.norm(vec))
            score = float(np.dot(query, vec)) / denom if denom else 0.0
            ranked.append((record, score))
        # Stable sort keeps insertion order among equal scores
        ranked.sort(key=lambda item: item[1], reverse=True)
        return ranked

    async def vectorized_search(
        self,
        vector: Sequence[float],
        options: VectorSearchOptions,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> VectorSearchResults[TRecord]:
        clauses = self._translate_filter(options.filter)
        query = np.asarray(vector, dtype=np.float32)
        if self._dimensions is not None and query.size != self._dimensions:
            raise QueryTranslationError(
                f"Query vector has {query.size} dimensions, store expects {self._dimensions}"
            )
        ranked = self._rank(query, clauses)
        window = ranked[options.offset : options.offset + options.limit]
        logger.debug(
            "In-memory search: matched=%d window=%d pages=%d",
            len(ranked),
            len(window),
            math.ceil(len(window) / self.page_size),
        )
        return VectorSearchResults(
            results=self._pages(window, cancellation),
            total_count=len(ranked),
            metadata={"scanned_count": len(self._records)},
        )

    async def _fetch_page(self, window: List[Tuple[TRecord, float]], start: int) -> List[Tuple[TRecord, float]]:
        self.fetch_count += 1
        # Yield to the loop like a network round trip would
        await asyncio.sleep(0)
        return window[start : start + self.page_size]

    async def _pages(
        self,
        window: List[Tuple[TRecord, float]],
        cancellation: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[VectorSearchResult[TRecord]]:
        start = 0
        while start < len(window):
            # No further round trips once the caller has cancelled
            if cancellation is not None and cancellation.is_set():
                return
            page = await self._fetch_page(window, start)
            for record, score in page:
                yield VectorSearchResult(record=record, score=score)
            start += len(page)
