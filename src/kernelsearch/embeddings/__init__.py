"""Embedding generators used to turn text queries into vectors."""

from .base import TextEmbeddingGenerator
from .function import FunctionEmbeddingGenerator
from .http import HttpEmbeddingGenerator

__all__ = ["TextEmbeddingGenerator", "FunctionEmbeddingGenerator", "HttpEmbeddingGenerator"]
