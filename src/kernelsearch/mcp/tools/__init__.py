"""Tool registration modules for the kernelsearch MCP server."""

from .text_search import register_text_search_tools

__all__ = ["register_text_search_tools"]
