"""Text search backed by a vector store.

The query is embedded once per call, then the vector is searched against a
`VectorizedSearch` backend. Records come back lazily and are projected by the
operation the caller picked.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from kernelsearch.embeddings.base import TextEmbeddingGenerator
from kernelsearch.exceptions import ConfigurationError, EmbeddingError, KernelSearchError
from kernelsearch.search.base_search import TRecord, VectorizedSearch
from kernelsearch.search.options import TextSearchOptions, VectorSearchOptions
from kernelsearch.search.record_text_search import RecordTextSearch
from kernelsearch.search.results import VectorSearchResults

logger = logging.getLogger(__name__)


class VectorStoreRecordTextSearch(RecordTextSearch[TRecord]):
    """Run text searches against a vector store collection.

    The instance borrows `vector_search` and `embedding_generator`; it holds
    no per-query state, so one instance can serve concurrent searches as long
    as the backend allows it.
    """

    def __init__(
        self,
        vector_search: VectorizedSearch[TRecord],
        embedding_generator: TextEmbeddingGenerator,
        *,
        string_mapper: Any = None,
        result_mapper: Any = None,
        default_options: Optional[TextSearchOptions] = None,
    ) -> None:
        if vector_search is None:
            raise ConfigurationError("vector_search is required")
        if embedding_generator is None:
            raise ConfigurationError("embedding_generator is required")
        super().__init__(
            string_mapper=string_mapper,
            result_mapper=result_mapper,
            default_options=default_options,
        )
        self._vector_search = vector_search
        self._embedding_generator = embedding_generator

    async def _execute_search(
        self,
        query: str,
        options: TextSearchOptions,
        cancellation: Optional[asyncio.Event],
    ) -> VectorSearchResults[TRecord]:
        try:
            vector = await self._embedding_generator.generate_embedding(
                query, cancellation=cancellation
            )
        except KernelSearchError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Failed to generate query embedding: {exc}") from exc

        vector_options = VectorSearchOptions.from_text_search_options(options)
        logger.debug(
            "Vector search: dimensions=%d offset=%d limit=%d",
            len(vector),
            vector_options.offset,
            vector_options.limit,
        )
        return await self._vector_search.vectorized_search(
            vector, vector_options, cancellation=cancellation
        )
