"""Ephemeral in-memory keyword search over arbitrary records using Whoosh.

Builds a temporary index in RAM for fast index->search cycles with no
persistence. Unlike `VectorStoreRecordTextSearch` no embedding is involved:
the query text is parsed and ranked with BM25F, and the matching records are
streamed back through the same projections.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from whoosh import scoring
from whoosh.analysis import StemmingAnalyzer
from whoosh.fields import ID, NUMERIC, TEXT, Schema
from whoosh.filedb.filestore import RamStorage
from whoosh.qparser import MultifieldParser, OrGroup
from whoosh.query import And, Term

from kernelsearch.exceptions import QueryTranslationError
from kernelsearch.search.options import EqualToFilterClause, TextSearchFilter, TextSearchOptions
from kernelsearch.search.record_text_search import RecordTextSearch
from kernelsearch.search.results import VectorSearchResult, VectorSearchResults

logger = logging.getLogger(__name__)

_ATTR_PREFIX = "attr_"


def _make_schema(filter_fields: Sequence[str]) -> Schema:
    analyzer = StemmingAnalyzer()
    fields: Dict[str, Any] = {
        "docnum": NUMERIC(stored=True, unique=True),
        "title": TEXT(analyzer=analyzer, field_boost=1.8),
        "content": TEXT(analyzer=analyzer),
    }
    for name in filter_fields:
        fields[_ATTR_PREFIX + name] = ID
    return Schema(**fields)


def _text_getter(spec: Any) -> Optional[Callable[[Any], str]]:
    if spec is None:
        return None
    if callable(spec):
        return spec
    name = str(spec)

    def _get(record: Any) -> str:
        value = record.get(name) if isinstance(record, dict) else getattr(record, name, None)
        return str(value or "")

    return _get


class EphemeralKeywordSearch(RecordTextSearch[Any]):
    """Keyword text search over an in-memory list of records.

    Parameters
    ----------
    records:
        The records to index. They are returned unchanged by
        `get_search_results()`.
    content:
        Field name or callable giving the searchable text of a record.
    title:
        Optional field name or callable giving a boosted title.
    filter_fields:
        Record fields that equality filters may target.
    """

    def __init__(
        self,
        records: Iterable[Any],
        *,
        content: Any = "content",
        title: Any = None,
        filter_fields: Sequence[str] = (),
        string_mapper: Any = None,
        result_mapper: Any = None,
        default_options: Optional[TextSearchOptions] = None,
    ) -> None:
        super().__init__(
            string_mapper=string_mapper,
            result_mapper=result_mapper,
            default_options=default_options,
        )
        self._records: List[Any] = list(records)
        self._filter_fields = tuple(filter_fields)
        self._content_of = _text_getter(content)
        self._title_of = _text_getter(title)
        self._index = self._build_index()

    def _build_index(self) -> Any:
        idx = RamStorage().create_index(_make_schema(self._filter_fields))
        writer = idx.writer(limitmb=32)
        for docnum, record in enumerate(self._records):
            row: Dict[str, Any] = {
                "docnum": docnum,
                "content": self._content_of(record) if self._content_of else "",
                "title": self._title_of(record) if self._title_of else "",
            }
            for name in self._filter_fields:
                value = record.get(name) if isinstance(record, dict) else getattr(record, name, None)
                if value is not None:
                    row[_ATTR_PREFIX + name] = str(value)
            writer.add_document(**row)
        writer.commit()
        return idx

    def _translate_filter(self, flt: Optional[TextSearchFilter]) -> Optional[Any]:
        if not flt:
            return None
        terms = []
        for clause in flt.clauses:
            if not isinstance(clause, EqualToFilterClause):
                raise QueryTranslationError(
                    f"Filter clause {type(clause).__name__} is not supported by keyword search"
                )
            if clause.field_name not in self._filter_fields:
                raise QueryTranslationError(f"Field '{clause.field_name}' is not filterable")
            terms.append(Term(_ATTR_PREFIX + clause.field_name, str(clause.value)))
        return And(terms)

    async def _execute_search(
        self,
        query: str,
        options: TextSearchOptions,
        cancellation: Optional[asyncio.Event],
    ) -> VectorSearchResults[Any]:
        flt = self._translate_filter(options.filter)
        if not query or not str(query).strip():
            return VectorSearchResults(results=_stream([]), total_count=0)

        with self._index.searcher(weighting=scoring.BM25F()) as searcher:
            parser = MultifieldParser(["title", "content"], schema=self._index.schema, group=OrGroup)
            q = parser.parse(query)
            results = searcher.search(q, limit=options.offset + options.count, filter=flt)
            total = len(results) if results.has_exact_length() else None
            hits = [
                (self._records[hit["docnum"]], float(hit.score or 0.0))
                for hit in results[options.offset :]
            ]
        logger.debug("Keyword search: hits=%d total=%s", len(hits), total)
        return VectorSearchResults(results=_stream(hits), total_count=total)


async def _stream(hits: List[Tuple[Any, float]]) -> AsyncIterator[VectorSearchResult[Any]]:
    for record, score in hits:
        yield VectorSearchResult(record=record, score=score)
