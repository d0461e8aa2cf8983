"""Base interface for query embedding generators.

Implementations should be safe to construct without side effects and should
not perform network calls until methods are invoked.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import List, Optional


class TextEmbeddingGenerator(ABC):
    """Abstract embedding generator interface."""

    @abstractmethod
    async def generate_embedding(
        self, text: str, *, cancellation: Optional[asyncio.Event] = None
    ) -> List[float]:
        """Return the embedding vector for `text`.

        The same text and model must always produce the same vector.
        """
        raise NotImplementedError
