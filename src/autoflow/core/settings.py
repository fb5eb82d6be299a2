"""
Centralized settings for autoflow.

Manifesto:
    One validated, cached settings object replaces ad-hoc ``os.environ``
    reads scattered through the worker, the Celery app and the CLI.
    ``AutomationSettings`` resolves every value from ``AUTOFLOW_*``
    environment variables or a ``.env`` file in a single place.

Examples:
    >>> from autoflow.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.queue_backend
    <QueueBackend.MEMORY: 'memory'>

Tags:
    autoflow, configuration, settings, pydantic, caching, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueueBackend(str, Enum):
    """Where successor node executions are dispatched."""

    MEMORY = "memory"
    CELERY = "celery"


class AutomationSettings(BaseSettings):
    """Automation engine configuration.

    All fields can be set via ``AUTOFLOW_*`` environment variables (e.g.
    ``AUTOFLOW_DATABASE_URL=postgresql+psycopg://…``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTOFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/autoflow.db")
    database_echo: bool = Field(default=False)
    database_pool_size: int = Field(default=5)
    sqlite_busy_timeout: float = Field(
        default=30.0,
        description="Seconds a SQLite writer waits for the database lock",
    )

    # ── Queue ────────────────────────────────────────────────────
    queue_backend: QueueBackend = Field(default=QueueBackend.MEMORY)
    celery_broker_url: str = Field(default="redis://localhost:6379/0")
    celery_result_backend: str = Field(default="redis://localhost:6379/1")
    celery_queue: str = Field(default="automations")
    celery_max_retries: int = Field(default=5)

    # ── Runners ──────────────────────────────────────────────────
    webhook_timeout_seconds: float = Field(default=15.0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("log_format")
    @classmethod
    def _normalize_format(cls, value: str) -> str:
        fmt = value.lower()
        if fmt not in {"json", "console"}:
            raise ValueError(f"Unknown log format: {value}")
        return fmt

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


# ── Settings factory with caching ────────────────────────────────────────

_settings: AutomationSettings | None = None


def get_settings(*, _force_reload: bool = False) -> AutomationSettings:
    """Load, validate, and cache an :class:`AutomationSettings` instance."""
    global _settings
    if _settings is None or _force_reload:
        _settings = AutomationSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    _settings = None
