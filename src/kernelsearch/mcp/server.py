"""kernelsearch MCP server entrypoint using FastMCP.

Exposes text search over a JSON Lines record file as MCP tools.
Run with:
  - kernelsearch-mcp
  - or: python -m kernelsearch.mcp.server (ensure PYTHONPATH includes ./src)

With an embedding endpoint configured the records are embedded into an
in-memory vector store; otherwise a keyword index is built instead.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from kernelsearch.config import SearchConfig, Settings, load_settings
from kernelsearch.connectors.in_memory import InMemoryVectorStore
from kernelsearch.embeddings.base import TextEmbeddingGenerator
from kernelsearch.embeddings.http import HttpEmbeddingGenerator
from kernelsearch.exceptions import ConfigurationError
from kernelsearch.mcp.tools import register_text_search_tools
from kernelsearch.search.base_search import TextSearch
from kernelsearch.search.ephemeral import EphemeralKeywordSearch
from kernelsearch.search.mappers import field_result_mapper, field_string_mapper
from kernelsearch.search.options import TextSearchOptions
from kernelsearch.search.vector_store_text_search import VectorStoreRecordTextSearch

logger = logging.getLogger(__name__)


def load_records(path: Path) -> List[Dict[str, Any]]:
    """Read one JSON object per non-empty line."""
    records: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"{path}:{lineno}: invalid JSON ({exc.msg})") from exc
            if not isinstance(obj, dict):
                raise ConfigurationError(f"{path}:{lineno}: expected a JSON object")
            records.append(obj)
    return records


def default_options(cfg: SearchConfig) -> TextSearchOptions:
    return TextSearchOptions(
        offset=cfg.default_offset,
        count=cfg.default_count,
        include_total_count=cfg.include_total_count,
    )


class AppState:
    """Application state shared by MCP tools."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.text_search: Optional[TextSearch] = None

    async def init_search(self, embedder: Optional[TextEmbeddingGenerator] = None) -> None:
        """Build the text search from configuration.

        `embedder` overrides the configured HTTP embedding endpoint.
        """
        scfg = self.settings.search
        if not scfg.records_path:
            self.text_search = None
            return
        records = load_records(Path(scfg.records_path))
        mappers = dict(
            string_mapper=field_string_mapper(scfg.content_field),
            result_mapper=field_result_mapper(
                scfg.content_field, name_field=scfg.name_field, link_field=scfg.link_field
            ),
            default_options=default_options(scfg),
        )
        if embedder is None and self.settings.embedding.base_url:
            embedder = HttpEmbeddingGenerator.from_config(self.settings.embedding)

        if embedder is None:
            logger.info("No embedding endpoint configured; using keyword search over %d records", len(records))
            self.text_search = EphemeralKeywordSearch(
                records, content=scfg.content_field, title=scfg.name_field, **mappers
            )
            return

        store: InMemoryVectorStore[Dict[str, Any]] = InMemoryVectorStore(page_size=scfg.page_size)
        for record in records:
            vector = await embedder.generate_embedding(str(record.get(scfg.content_field, "")))
            store.upsert(record, vector)
        logger.info("Indexed %d records into the in-memory vector store", len(store))
        self.text_search = VectorStoreRecordTextSearch(store, embedder, **mappers)


# Global state and server instance
_state: Optional[AppState] = None
mcp = FastMCP("kernelsearch MCP Server")


# ----- Tools -----

@mcp.tool
def health() -> str:
    """Simple health check tool."""
    return "ok"


# ----- Entrypoint -----

def main() -> None:
    """Initialize state and run the MCP server."""
    global _state
    settings = load_settings()
    logging.basicConfig(level=settings.app.log_level.upper())
    _state = AppState(settings)
    asyncio.run(_state.init_search())
    register_text_search_tools(mcp, get_state=lambda: _state)
    # Choose transport based on configuration: stdio (default), http, or sse
    transport = settings.app.transport
    if transport in ("http", "sse"):
        mcp.run(transport=transport, host=settings.app.host, port=settings.app.port)
    else:
        mcp.run()


if __name__ == "__main__":  # pragma: no cover
    main()
