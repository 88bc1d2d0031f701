"""
Configuration for the translation record store.

Uses pydantic-settings for environment variable loading. Every setting
can be overridden with a ``TXSTORE_`` prefixed variable, e.g.
``TXSTORE_DATABASE_PATH=/var/lib/txstore/strings.db``.

Invariants:
    - All settings have sensible defaults for local development
    - The store never reads the environment itself; hosts build settings
      once and pass them in
"""

from __future__ import annotations

import logging

import json_log_formatter
from pydantic import Field
from pydantic_settings import BaseSettings


class StoreSettings(BaseSettings):
    """Store configuration loaded from environment."""

    # SQLite
    database_path: str = Field(default="txstore.db", description="SQLite database file")
    wal_mode: bool = Field(default=True, description="Enable SQLite WAL journal")
    busy_timeout_ms: int = Field(default=5000, description="SQLite busy timeout")
    cache_size_pages: int = Field(default=-64000, description="SQLite cache size (negative = KB)")

    # Pagination
    default_page_size: int = Field(default=100, description="Limit used when none is given")
    max_page_size: int = Field(default=100, description="Larger limits are clamped to this")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="text", description="text or json")

    model_config = {"env_prefix": "TXSTORE_"}


def setup_logging(settings: StoreSettings) -> None:
    """Configure root logging for a process hosting the store.

    Args:
        settings: Store settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]
