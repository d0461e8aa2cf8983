"""Text search tools for FastMCP.

Expose the configured `TextSearch` as three tools, one per result shape.
Results are drained from the lazy result set before being returned, since
tool calls reply with a single payload.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP
from pydantic_core import to_jsonable_python

from kernelsearch.search.base_search import TextSearch
from kernelsearch.search.options import TextSearchOptions
from kernelsearch.search.results import TextSearchResult


def _serialize_text_search_result(result: TextSearchResult) -> Dict[str, Any]:
    return {"name": result.name, "value": result.value, "link": result.link}


def _serialize_record(record: Any) -> Any:
    # Unknown types degrade to their string form rather than failing the tool
    return to_jsonable_python(record, fallback=str)


def register_text_search_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register text search tools on the given FastMCP instance.

    The `get_state` callable should return an object with attributes
    `text_search` (a `TextSearch`) and `settings`.
    """

    def _get_search(state_obj: Any) -> TextSearch:
        search = getattr(state_obj, "text_search", None) if state_obj is not None else None
        if search is None:
            raise RuntimeError(
                "Text search is not configured. Set KERNELSEARCH_EMBEDDING__BASE_URL and a backend."
            )
        return search

    def _make_options(state_obj: Any, count: Optional[int], skip: Optional[int]) -> TextSearchOptions:
        settings = getattr(state_obj, "settings", None)
        scfg = getattr(settings, "search", None)
        default_count = int(getattr(scfg, "default_count", 5))
        default_offset = int(getattr(scfg, "default_offset", 0))
        return TextSearchOptions(
            count=count if count is not None else default_count,
            offset=skip if skip is not None else default_offset,
            include_total_count=bool(getattr(scfg, "include_total_count", False)),
        )

    @mcp.tool
    async def search(query: str, count: Optional[int] = None, skip: Optional[int] = None) -> List[str]:
        """Search and return matching results as plain strings.

        Parameters
        ----------
        query: str
            What to search for.
        count: int | None
            Number of results (default from settings).
        skip: int | None
            Number of results to skip.
        """
        state = get_state()
        ts = _get_search(state)
        results = await ts.search(query, _make_options(state, count, skip))
        return await results.to_list()

    @mcp.tool
    async def get_text_search_results(
        query: str, count: Optional[int] = None, skip: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Search and return results as {name, value, link} objects."""
        state = get_state()
        ts = _get_search(state)
        results = await ts.get_text_search_results(query, _make_options(state, count, skip))
        return [_serialize_text_search_result(r) async for r in results]

    @mcp.tool
    async def get_search_results(
        query: str, count: Optional[int] = None, skip: Optional[int] = None
    ) -> List[Any]:
        """Search and return the backend records as JSON objects."""
        state = get_state()
        ts = _get_search(state)
        results = await ts.get_search_results(query, _make_options(state, count, skip))
        return [_serialize_record(r) async for r in results]
