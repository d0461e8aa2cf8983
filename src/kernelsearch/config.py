from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    name: str = "kernelsearch"
    env: str = "development"
    log_level: str = "INFO"
    # Transport settings for FastMCP: "stdio" (default), "http", or "sse"
    transport: Literal["stdio", "http", "sse"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000


class SearchConfig(BaseModel):
    """Defaults applied when a caller does not pass explicit search options."""

    default_count: int = Field(default=5, gt=0)
    default_offset: int = Field(default=0, ge=0)
    include_total_count: bool = False
    # JSON Lines file with one record per line, served by the MCP server
    records_path: Optional[str] = None
    content_field: str = "content"
    name_field: str = "name"
    link_field: str = "link"
    page_size: int = Field(default=10, gt=0)


class EmbeddingConfig(BaseModel):
    """OpenAI-compatible embedding endpoint configuration."""

    base_url: Optional[str] = None  # e.g. "https://api.openai.com/v1"
    api_key: Optional[str] = None
    model: str = "text-embedding-3-small"
    timeout: float = 30.0


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="KERNELSEARCH_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    search: SearchConfig = SearchConfig()
    embedding: EmbeddingConfig = EmbeddingConfig()


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    return Settings()  # type: ignore[call-arg]
