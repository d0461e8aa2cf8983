"""Result containers produced by backends and handed to callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Generic, List, Optional, TypeVar

from kernelsearch.exceptions import ResultsConsumedError

TRecord = TypeVar("TRecord")
T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class TextSearchResult:
    """Normalized view of a backend record.

    Attributes
    ----------
    name: str | None
        Optional display name (title) of the result.
    value: str
        The primary text payload.
    link: str | None
        Optional URI pointing at the source of the result.
    inner_content: Any
        The backend record this result was built from.
    """

    value: str
    name: Optional[str] = None
    link: Optional[str] = None
    inner_content: Any = None


@dataclass(frozen=True, slots=True)
class VectorSearchResult(Generic[TRecord]):
    """A backend record paired with its relevance score."""

    record: TRecord
    score: Optional[float] = None


@dataclass(slots=True)
class VectorSearchResults(Generic[TRecord]):
    """What a backend returns for one query: a lazy result stream plus extras.

    `total_count` is only set when the backend knows the exact number of
    matches without extra work.
    """

    results: AsyncIterator[VectorSearchResult[TRecord]]
    total_count: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class KernelSearchResults(Generic[T]):
    """Lazy, forward-only, single-pass sequence of search results.

    Iterate with ``async for``, optionally inside ``async with`` so the
    backend stream is closed when the block exits early. A second
    iteration raises `ResultsConsumedError`; run the search again to get
    fresh results.
    """

    def __init__(
        self,
        results: AsyncIterator[T],
        *,
        total_count: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._results = results
        self._consumed = False
        self.total_count = total_count
        self.metadata: Dict[str, Any] = dict(metadata or {})

    def __aiter__(self) -> AsyncIterator[T]:
        if self._consumed:
            raise ResultsConsumedError("Search results can only be iterated once")
        self._consumed = True
        return self._results

    async def aclose(self) -> None:
        """Abandon the sequence and release the backend stream."""
        self._consumed = True
        aclose = getattr(self._results, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> KernelSearchResults[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def to_list(self) -> List[T]:
        """Drain the remaining results into a list.

        Works after a partial ``async for`` as well; results already pulled
        are not repeated.
        """
        self._consumed = True
        return [item async for item in self._results]
