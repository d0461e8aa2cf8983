"""Embedding generator for OpenAI-compatible HTTP endpoints.

Uses the `POST {base_url}/embeddings` API via httpx. Auth: bearer API key.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from kernelsearch.config import EmbeddingConfig
from kernelsearch.embeddings.base import TextEmbeddingGenerator
from kernelsearch.exceptions import ConfigurationError, EmbeddingError


class HttpEmbeddingGenerator(TextEmbeddingGenerator):
    def __init__(
        self,
        *,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        if not base_url:
            raise ConfigurationError("Embedding base_url is required")
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls, cfg: EmbeddingConfig) -> HttpEmbeddingGenerator:
        if not cfg.base_url:
            raise ConfigurationError(
                "Embedding endpoint is not configured. Set KERNELSEARCH_EMBEDDING__BASE_URL."
            )
        return cls(base_url=cfg.base_url, model=cfg.model, api_key=cfg.api_key, timeout=cfg.timeout)

    def _headers(self) -> Dict[str, str]:
        h = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, headers=self._headers())

    async def generate_embedding(
        self, text: str, *, cancellation: Optional[asyncio.Event] = None
    ) -> List[float]:
        payload = {"model": self.model, "input": text}
        try:
            async with self._client() as client:
                resp = await client.post("/embeddings", json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON") from exc
        return _extract_embedding(data)


def _extract_embedding(data: Any) -> List[float]:
    # Expected shape: {"data": [{"embedding": [...], "index": 0}], ...}
    items = data.get("data") if isinstance(data, dict) else None
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        raise EmbeddingError("Embedding response has no data")
    embedding = items[0].get("embedding")
    if not isinstance(embedding, list) or not embedding:
        raise EmbeddingError("Embedding response has no embedding vector")
    try:
        return [float(x) for x in embedding]
    except (TypeError, ValueError) as exc:
        raise EmbeddingError("Embedding vector contains non-numeric values") from exc
