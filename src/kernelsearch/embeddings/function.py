"""Embedding generator wrapping a plain sync or async callable."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, List, Optional, Sequence

from kernelsearch.embeddings.base import TextEmbeddingGenerator


class FunctionEmbeddingGenerator(TextEmbeddingGenerator):
    """Adapt ``fn(text) -> vector`` (or an async variant) to `TextEmbeddingGenerator`."""

    def __init__(self, fn: Callable[[str], Any]) -> None:
        self._fn = fn

    async def generate_embedding(
        self, text: str, *, cancellation: Optional[asyncio.Event] = None
    ) -> List[float]:
        result = self._fn(text)
        if inspect.isawaitable(result):
            result = await result
        vector: Sequence[float] = result
        return [float(x) for x in vector]
