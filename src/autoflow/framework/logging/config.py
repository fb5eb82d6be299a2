"""
Logging configuration.

Provides a single entry point for configuring structured logging.
Supports environment-based configuration for:
- Log level (DEBUG, INFO, WARNING, ERROR)
- Output format (json, console)
- Automation-specific debug filtering

Configuration is read from environment variables:
- AUTOFLOW_LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: INFO)
- AUTOFLOW_LOG_FORMAT: json | console (default: console)
- AUTOFLOW_LOG_AUTOMATION_DEBUG: comma-separated automation ids for verbose debug

Usage:
    # Configure at worker startup
    from autoflow.framework.logging import configure_logging
    configure_logging()

    # Or with explicit settings
    configure_logging(level="DEBUG", format="json")
"""

import logging
import os
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

from autoflow.framework.logging.context import add_context_processor, get_context

# Track if logging has been configured
_configured = False


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    automation_debug: list[str] | None = None,
    force: bool = False,
) -> None:
    """
    Configure structured logging for the application.

    Should be called once at application startup (CLI entry, worker startup, etc.).
    Subsequent calls are no-ops unless force=True.

    Args:
        level: Log level (overrides AUTOFLOW_LOG_LEVEL env var)
        format: Output format (overrides AUTOFLOW_LOG_FORMAT env var)
        automation_debug: Automation ids for verbose debug logging
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    log_level = (level or os.environ.get("AUTOFLOW_LOG_LEVEL", "INFO")).upper()
    log_format = (format or os.environ.get("AUTOFLOW_LOG_FORMAT", "console")).lower()

    debug_automations = automation_debug
    if debug_automations is None:
        env_ids = os.environ.get("AUTOFLOW_LOG_AUTOMATION_DEBUG", "")
        debug_automations = [p.strip() for p in env_ids.split(",") if p.strip()]

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        # UTC ISO-8601 timestamps
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        # Run/node context from contextvars
        add_context_processor,
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if debug_automations:
        processors.insert(0, _make_automation_filter(debug_automations, log_level))
    else:
        processors.insert(0, structlog.stdlib.filter_by_level)

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Listed automations log at DEBUG; the processor filter drops the rest
    stdlib_level = logging.DEBUG if debug_automations else getattr(logging, log_level)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=stdlib_level,
        force=True,
    )

    for logger_name in ["autoflow"]:
        logging.getLogger(logger_name).setLevel(stdlib_level)

    _configured = True


def _make_automation_filter(debug_automations: list[str], default_level: str):
    """
    Create a processor that enables DEBUG for specific automations.

    For listed automations, always allow DEBUG.
    For others, use the default level.
    """
    default_level_num = getattr(logging, default_level)

    def automation_debug_filter(
        logger: Any,
        method_name: str,
        event_dict: dict,
    ) -> dict:
        automation_id = event_dict.get("automation_id") or get_context().automation_id

        level = event_dict.get("level", method_name)
        level_num = getattr(logging, level.upper(), logging.DEBUG)

        if automation_id and automation_id in debug_automations:
            return event_dict

        if level_num < default_level_num:
            raise structlog.DropEvent

        return event_dict

    return automation_debug_filter


def is_debug_enabled() -> bool:
    """Check if DEBUG level logging is enabled."""
    return logging.getLogger().isEnabledFor(logging.DEBUG)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured
