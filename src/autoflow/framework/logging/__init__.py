"""
Autoflow Logging - Structured, execution-aware logging.

This module provides:
- Structured logging with structlog
- Run/node context propagation via contextvars
- Environment-based configuration

Usage:
    from autoflow.framework.logging import get_logger, configure_logging, push_context

    # Configure once at startup
    configure_logging()

    # Get a logger
    log = get_logger(__name__)

    # Scope run/node identifiers to a block
    token = push_context(run_id="abc-123", node_id="send")
    try:
        log.info("automation.node.started")
    finally:
        token.restore()
"""

from autoflow.framework.logging.config import configure_logging, is_configured, is_debug_enabled
from autoflow.framework.logging.context import (
    LogContext,
    bind_context,
    clear_context,
    get_context,
    get_logger,
    push_context,
    set_context,
)

__all__ = [
    # Configuration
    "configure_logging",
    "is_configured",
    "is_debug_enabled",
    # Context
    "get_logger",
    "set_context",
    "clear_context",
    "get_context",
    "bind_context",
    "push_context",
    "LogContext",
]
