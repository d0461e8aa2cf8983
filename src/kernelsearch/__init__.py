"""Lazy, projection-based text search over vector and keyword backends."""

__version__ = "0.1.0"
