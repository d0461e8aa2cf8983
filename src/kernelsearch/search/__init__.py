"""Text search: options, results, mappers and the record-backed implementations."""

from .base_search import TextSearch, VectorizedSearch
from .ephemeral import EphemeralKeywordSearch
from .mappers import field_result_mapper, field_string_mapper
from .options import (
    AnyTagEqualToFilterClause,
    EqualToFilterClause,
    TextSearchFilter,
    TextSearchOptions,
    VectorSearchOptions,
)
from .record_text_search import RecordTextSearch
from .results import KernelSearchResults, TextSearchResult, VectorSearchResult, VectorSearchResults
from .vector_store_text_search import VectorStoreRecordTextSearch

__all__ = [
    "TextSearch",
    "VectorizedSearch",
    "RecordTextSearch",
    "VectorStoreRecordTextSearch",
    "EphemeralKeywordSearch",
    "TextSearchOptions",
    "VectorSearchOptions",
    "TextSearchFilter",
    "EqualToFilterClause",
    "AnyTagEqualToFilterClause",
    "KernelSearchResults",
    "TextSearchResult",
    "VectorSearchResult",
    "VectorSearchResults",
    "field_string_mapper",
    "field_result_mapper",
]
