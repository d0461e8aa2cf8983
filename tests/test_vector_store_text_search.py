import asyncio
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from kernelsearch.embeddings import FunctionEmbeddingGenerator
from kernelsearch.exceptions import (
    BackendError,
    ConfigurationError,
    EmbeddingError,
    MappingError,
    ResultsConsumedError,
)
from kernelsearch.search import (
    TextSearchOptions,
    TextSearchResult,
    VectorSearchOptions,
    VectorSearchResult,
    VectorSearchResults,
    VectorStoreRecordTextSearch,
    field_result_mapper,
    field_string_mapper,
)
from kernelsearch.search.base_search import TextSearch

# ---------- Helpers ----------


def make_records(n: int = 10) -> List[Tuple[Dict[str, Any], float]]:
    # R1 scores 1.0, R2 0.95, R3 0.9, R4 0.85, ...
    return [
        (
            {"id": f"R{i + 1}", "text": f"record {i + 1}", "url": f"https://example.com/r{i + 1}"},
            round(1.0 - 0.05 * i, 2),
        )
        for i in range(n)
    ]


class FakeVectorSearch:
    """Backend that pages through a fixed ranked list and records what it was asked."""

    def __init__(
        self,
        records: List[Tuple[Dict[str, Any], float]],
        *,
        page_size: int = 10,
        fail_at: Optional[int] = None,
        total_count: Optional[int] = None,
        delay: float = 0,
    ) -> None:
        self.records = records
        self.delay = delay
        self.page_size = page_size
        self.fail_at = fail_at
        self.total_count = total_count
        self.calls: List[Tuple[List[float], VectorSearchOptions]] = []
        self.pages_fetched = 0
        self.pulled = 0
        self.closed = False

    async def vectorized_search(
        self,
        vector: Sequence[float],
        options: VectorSearchOptions,
        *,
        cancellation: Optional[asyncio.Event] = None,
    ) -> VectorSearchResults[Dict[str, Any]]:
        self.calls.append((list(vector), options))
        window = self.records[options.offset : options.offset + options.limit]
        return VectorSearchResults(
            results=self._stream(window),
            total_count=self.total_count,
            metadata={"backend": "fake"},
        )

    async def _stream(self, window: List[Tuple[Dict[str, Any], float]]):
        try:
            for start in range(0, len(window), self.page_size):
                self.pages_fetched += 1
                await asyncio.sleep(self.delay)
                for i, (record, score) in enumerate(window[start : start + self.page_size], start=start):
                    if self.fail_at is not None and i == self.fail_at:
                        raise ConnectionError("backend went away")
                    self.pulled += 1
                    yield VectorSearchResult(record=record, score=score)
        finally:
            self.closed = True


class CountingEmbedder(FunctionEmbeddingGenerator):
    def __init__(self) -> None:
        self.calls: List[str] = []

        def _embed(text: str) -> List[float]:
            self.calls.append(text)
            return [1.0, 0.0, 0.0]

        super().__init__(_embed)


def string_of(record: Dict[str, Any]) -> str:
    return record["text"]


def make_search(backend: FakeVectorSearch, **kwargs: Any) -> VectorStoreRecordTextSearch:
    kwargs.setdefault("string_mapper", string_of)
    kwargs.setdefault(
        "result_mapper", field_result_mapper("text", name_field="id", link_field="url")
    )
    return VectorStoreRecordTextSearch(backend, CountingEmbedder(), **kwargs)


# ---------- Concrete scenarios ----------


@pytest.mark.asyncio
async def test_search_returns_strings_for_requested_window() -> None:
    backend = FakeVectorSearch(make_records(10))
    ts = make_search(backend)

    results = await ts.search("test", TextSearchOptions(offset=2, count=2))
    it = results.__aiter__()
    first = await it.__anext__()
    second = await it.__anext__()
    with pytest.raises(StopAsyncIteration):
        await it.__anext__()

    assert [first, second] == ["record 3", "record 4"]
    assert results.total_count is None
    _, options = backend.calls[0]
    assert options.offset == 2
    assert options.limit == 2
    assert options.filter is None
    assert [score for _, score in backend.records[2:4]] == pytest.approx([0.9, 0.85])


@pytest.mark.asyncio
async def test_mapping_failure_surfaces_at_failing_element_and_stops_pulling() -> None:
    backend = FakeVectorSearch(make_records(10))

    def mapper(record: Dict[str, Any]) -> str:
        if record["id"] == "R4":
            raise KeyError("text")
        return record["text"]

    ts = make_search(backend, string_mapper=mapper)
    results = await ts.search("test", TextSearchOptions(offset=2, count=5))
    it = results.__aiter__()

    assert await it.__anext__() == "record 3"
    with pytest.raises(MappingError) as exc_info:
        await it.__anext__()

    assert exc_info.value.position == 1
    assert exc_info.value.record["id"] == "R4"
    assert isinstance(exc_info.value.__cause__, KeyError)
    assert backend.pulled == 2
    assert backend.closed is True
    with pytest.raises(StopAsyncIteration):
        await it.__anext__()


# ---------- Properties ----------


@pytest.mark.asyncio
async def test_results_are_single_pass() -> None:
    backend = FakeVectorSearch(make_records(5))
    ts = make_search(backend)

    results = await ts.search("test")
    values = [v async for v in results]
    assert len(values) == 5

    with pytest.raises(ResultsConsumedError):
        async for _ in results:
            pass
    assert len(backend.calls) == 1


@pytest.mark.asyncio
async def test_backend_pages_are_bounded_by_requested_count() -> None:
    backend = FakeVectorSearch(make_records(10), page_size=3)
    ts = make_search(backend)

    results = await ts.get_search_results("test", TextSearchOptions(count=7))
    records = await results.to_list()

    assert len(records) == 7
    assert backend.pages_fetched == math.ceil(7 / 3)


@pytest.mark.asyncio
async def test_pages_are_fetched_on_demand() -> None:
    backend = FakeVectorSearch(make_records(10), page_size=2)
    ts = make_search(backend)

    results = await ts.search("test", TextSearchOptions(count=10))
    assert backend.pages_fetched == 0

    it = results.__aiter__()
    await it.__anext__()
    await it.__anext__()
    assert backend.pages_fetched == 1
    await it.__anext__()
    assert backend.pages_fetched == 2
    await results.aclose()


@pytest.mark.asyncio
async def test_record_and_text_projections_follow_the_same_sequence() -> None:
    backend = FakeVectorSearch(make_records(6))
    result_mapper = field_result_mapper("text", name_field="id", link_field="url")
    ts = make_search(backend, result_mapper=result_mapper)
    options = TextSearchOptions(offset=1, count=4)

    records = await (await ts.get_search_results("test", options)).to_list()
    text_results = await (await ts.get_text_search_results("test", options)).to_list()

    assert len(records) == len(text_results) == 4
    for record, text_result in zip(records, text_results):
        assert result_mapper(record) == text_result
        assert text_result.inner_content is record
    assert isinstance(text_results[0], TextSearchResult)
    assert text_results[0].name == "R2"
    assert text_results[0].link == "https://example.com/r2"


@pytest.mark.asyncio
async def test_cancellation_stops_iteration_without_new_elements() -> None:
    backend = FakeVectorSearch(make_records(10), page_size=2)
    ts = make_search(backend)
    cancel = asyncio.Event()

    results = await ts.search("test", TextSearchOptions(count=10), cancellation=cancel)
    received: List[str] = []
    async for value in results:
        received.append(value)
        if len(received) == 3:
            cancel.set()

    assert received == ["record 1", "record 2", "record 3"]
    assert backend.pulled == 3
    assert backend.closed is True


@pytest.mark.asyncio
async def test_element_arriving_after_cancellation_is_dropped() -> None:
    backend = FakeVectorSearch(make_records(10), page_size=2, delay=0.05)
    ts = make_search(backend)
    cancel = asyncio.Event()

    results = await ts.search("test", TextSearchOptions(count=10), cancellation=cancel)
    it = results.__aiter__()
    assert await it.__anext__() == "record 1"
    assert await it.__anext__() == "record 2"

    async def pull() -> Optional[str]:
        try:
            return await it.__anext__()
        except StopAsyncIteration:
            return None

    # The next pull suspends on the second page fetch
    task = asyncio.create_task(pull())
    await asyncio.sleep(0.01)
    cancel.set()

    assert await task is None
    assert backend.pages_fetched == 2
    assert backend.pulled == 3
    assert backend.closed is True


@pytest.mark.asyncio
async def test_already_cancelled_search_returns_nothing_without_io() -> None:
    backend = FakeVectorSearch(make_records(5))
    embedder = CountingEmbedder()
    ts = VectorStoreRecordTextSearch(backend, embedder, string_mapper=string_of)
    cancel = asyncio.Event()
    cancel.set()

    results = await ts.search("test", cancellation=cancel)

    assert await results.to_list() == []
    assert results.total_count is None
    assert embedder.calls == []
    assert backend.calls == []


@pytest.mark.asyncio
async def test_breaking_out_of_async_with_closes_backend_stream() -> None:
    backend = FakeVectorSearch(make_records(10), page_size=2)
    ts = make_search(backend)

    results = await ts.search("test", TextSearchOptions(count=10))
    received: List[str] = []
    async with results:
        async for value in results:
            received.append(value)
            break

    assert received == ["record 1"]
    assert backend.closed is True
    assert backend.pages_fetched == 1


@pytest.mark.asyncio
async def test_to_list_after_partial_iteration_returns_the_rest() -> None:
    backend = FakeVectorSearch(make_records(4))
    ts = make_search(backend)

    results = await ts.search("test")
    it = results.__aiter__()
    assert await it.__anext__() == "record 1"

    assert await results.to_list() == ["record 2", "record 3", "record 4"]
    with pytest.raises(ResultsConsumedError):
        results.__aiter__()


@pytest.mark.asyncio
async def test_empty_backend_yields_nothing() -> None:
    backend = FakeVectorSearch([])
    ts = make_search(backend)

    results = await ts.search("test")
    assert await results.to_list() == []


@pytest.mark.asyncio
async def test_fewer_records_than_count_ends_early() -> None:
    backend = FakeVectorSearch(make_records(3))
    ts = make_search(backend)

    results = await ts.search("test", TextSearchOptions(count=50))
    assert await results.to_list() == ["record 1", "record 2", "record 3"]


@pytest.mark.asyncio
async def test_duplicate_records_are_passed_through() -> None:
    record = {"id": "R1", "text": "same"}
    backend = FakeVectorSearch([(record, 0.9), (record, 0.9)])
    ts = make_search(backend)

    results = await ts.search("test")
    assert await results.to_list() == ["same", "same"]


# ---------- Failure semantics ----------


@pytest.mark.asyncio
async def test_backend_failure_mid_stream_is_a_backend_error() -> None:
    backend = FakeVectorSearch(make_records(5), fail_at=1)
    ts = make_search(backend)

    results = await ts.search("test")
    it = results.__aiter__()
    assert await it.__anext__() == "record 1"
    with pytest.raises(BackendError) as exc_info:
        await it.__anext__()
    assert not isinstance(exc_info.value, MappingError)
    assert isinstance(exc_info.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_embedding_failure_aborts_before_backend_call() -> None:
    backend = FakeVectorSearch(make_records(5))

    def broken(text: str) -> List[float]:
        raise RuntimeError("embedding service down")

    ts = VectorStoreRecordTextSearch(
        backend, FunctionEmbeddingGenerator(broken), string_mapper=string_of
    )
    with pytest.raises(EmbeddingError):
        await ts.search("test")
    assert backend.calls == []


@pytest.mark.asyncio
async def test_missing_result_mapper_fails_before_any_io() -> None:
    backend = FakeVectorSearch(make_records(5))
    embedder = CountingEmbedder()
    ts = VectorStoreRecordTextSearch(backend, embedder, string_mapper=string_of)

    with pytest.raises(ConfigurationError):
        await ts.get_text_search_results("test")
    assert embedder.calls == []
    assert backend.calls == []

    # The identity projection needs no mapper at all
    records = await (await ts.get_search_results("test")).to_list()
    assert len(records) == 5


@pytest.mark.asyncio
async def test_text_search_base_operations_are_abstract() -> None:
    class Delegating(TextSearch):
        async def search(self, query, options=None, *, cancellation=None):
            return await super().search(query, options, cancellation=cancellation)

        async def get_text_search_results(self, query, options=None, *, cancellation=None):
            return await super().get_text_search_results(query, options, cancellation=cancellation)

        async def get_search_results(self, query, options=None, *, cancellation=None):
            return await super().get_search_results(query, options, cancellation=cancellation)

    ts = Delegating()
    for operation in (ts.search, ts.get_text_search_results, ts.get_search_results):
        with pytest.raises(NotImplementedError):
            await operation("test")


def test_constructor_requires_backend_and_embedder() -> None:
    with pytest.raises(ConfigurationError):
        VectorStoreRecordTextSearch(None, CountingEmbedder())  # type: ignore[arg-type]
    with pytest.raises(ConfigurationError):
        VectorStoreRecordTextSearch(FakeVectorSearch([]), None)  # type: ignore[arg-type]


# ---------- Options, count and metadata ----------


@pytest.mark.asyncio
async def test_default_options_are_used_when_none_given() -> None:
    backend = FakeVectorSearch(make_records(10))
    ts = make_search(backend, default_options=TextSearchOptions(offset=1, count=3))

    results = await ts.search("test")
    assert await results.to_list() == ["record 2", "record 3", "record 4"]


@pytest.mark.asyncio
async def test_total_count_only_reported_when_requested() -> None:
    backend = FakeVectorSearch(make_records(10), total_count=10)
    ts = make_search(backend)

    plain = await ts.search("test")
    counted = await ts.search("test", TextSearchOptions(include_total_count=True))

    assert plain.total_count is None
    assert counted.total_count == 10
    assert counted.metadata == {"backend": "fake"}
    await plain.aclose()
    await counted.aclose()


@pytest.mark.asyncio
async def test_mapper_objects_are_accepted() -> None:
    class UpperMapper:
        def map_from_result_to_string(self, record: Dict[str, Any]) -> str:
            return record["text"].upper()

    backend = FakeVectorSearch(make_records(2))
    ts = make_search(backend, string_mapper=UpperMapper())

    results = await ts.search("test")
    assert await results.to_list() == ["RECORD 1", "RECORD 2"]


@pytest.mark.asyncio
async def test_field_string_mapper_reports_missing_field_as_mapping_error() -> None:
    backend = FakeVectorSearch([({"id": "R1"}, 0.5)])
    ts = make_search(backend, string_mapper=field_string_mapper("text"))

    results = await ts.search("test")
    with pytest.raises(MappingError):
        await results.to_list()
