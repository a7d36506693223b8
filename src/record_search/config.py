"""Centralized configuration for record-search using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``RECORD_SEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RECORD_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Index storage
    index_backend: Literal["memory", "sqlite"] = Field(
        default="memory", description="Where index entries live: process memory or a SQLite database"
    )
    sqlite_path: Path | None = Field(default=None, description="SQLite database file for the sqlite backend")

    # Consistency
    reindex_on_search: bool = Field(
        default=True,
        description="Rebuild stale entries of the searched type before matching",
    )
    eager_reindex: bool = Field(
        default=False,
        description="Rebuild an entry right after its change notification instead of on the next search",
    )

    # Query language
    qualifier_case_sensitive: bool = Field(
        default=True,
        description="Match qualifier names (field:value) case-sensitively against registered fields",
    )

    # Logging and tracing
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")
    service_name: str = Field(default="record-search", min_length=1, description="Service name for tracing")
    tracing_enabled: bool = Field(default=False, description="Install an OpenTelemetry tracer provider")

    @model_validator(mode="after")
    def _check_sqlite_path(self) -> "Settings":
        if self.index_backend == "sqlite" and self.sqlite_path is None:
            raise ValueError("RECORD_SEARCH_SQLITE_PATH must be set when RECORD_SEARCH_INDEX_BACKEND is 'sqlite'")
        return self

    def is_sqlite_backend(self) -> bool:
        return self.index_backend == "sqlite"
