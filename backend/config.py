"""
Application settings.

All values can be overridden via environment variables prefixed with
``DCMON_`` (e.g. ``DCMON_DB_PATH``) or a ``.env`` file.
"""

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings for the alert engine service"""

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8000, description="Bind port")
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Storage ──────────────────────────────────────────────────────────
    db_path: str = Field(default="data/alerts.db", description="SQLite database file")

    # ── Evaluation ───────────────────────────────────────────────────────
    worker_count: int = Field(default=8, ge=1, description="Evaluation worker threads")
    default_consecutive_count: int = Field(
        default=3, ge=1, description="Fallback when no settings row exists",
    )
    default_cooldown_minutes: int = Field(
        default=10, ge=0, description="Fallback when no settings row exists",
    )

    # ── Live push ────────────────────────────────────────────────────────
    sse_timeout_seconds: float = Field(default=3600.0, gt=0, description="Max stream lifetime")
    sse_keepalive_seconds: float = Field(default=30.0, gt=0, description="Keepalive interval")
    subscriber_queue_size: int = Field(default=100, ge=1, description="Per-subscriber backlog")

    model_config: dict[str, Any] = {
        "env_prefix": "DCMON_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
