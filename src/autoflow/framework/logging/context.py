"""
Logging context management using contextvars.

Execution-aware context that automatically attaches to all log entries.
The node executor binds ``run_id``/``node_id`` once at the top of
``execute_node`` and every log line emitted underneath (repository, runner,
queue) carries them without explicit parameter passing.

Design choice: contextvars
- Thread-safe and asyncio-compatible
- Works inside Celery worker processes
- Clean integration with structlog processors
"""

from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Any

import structlog


@dataclass
class LogContext:
    """
    Execution context attached to all log entries.

    Run identifiers:
        run_id: Automation run id
        automation_id: Automation id

    Node identifiers:
        node_id: Graph node being executed
        node_type: Node type string (e.g. ``logic.condition``)

    Subject:
        subject_type: ``invoice``, ``workflow_job``, ...
        subject_id: Subject identifier

    Execution metadata:
        backend: Queue backend ("memory", "celery")
        attempt: Node-run attempt number (default 1)
    """

    run_id: str | None = None
    automation_id: str | None = None

    node_id: str | None = None
    node_type: str | None = None

    subject_type: str | None = None
    subject_id: str | None = None

    backend: str | None = None
    attempt: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict (excludes attempt=1 default)."""
        result = {}
        for k, v in asdict(self).items():
            if v is None:
                continue
            if k == "attempt" and v == 1:
                continue
            result[k] = v
        return result

    def merge(self, **kwargs) -> "LogContext":
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None and k in current})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("autoflow_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


def set_context(
    run_id: str | None = None,
    automation_id: str | None = None,
    node_id: str | None = None,
    node_type: str | None = None,
    subject_type: str | None = None,
    subject_id: str | None = None,
    backend: str | None = None,
    attempt: int = 1,
) -> LogContext:
    """
    Set the current log context.

    This replaces the current context. Use bind_context() to add to existing.
    """
    ctx = LogContext(
        run_id=run_id,
        automation_id=automation_id,
        node_id=node_id,
        node_type=node_type,
        subject_type=subject_type,
        subject_id=subject_id,
        backend=backend,
        attempt=attempt,
    )
    _log_context.set(ctx)
    return ctx


def bind_context(**kwargs) -> LogContext:
    """
    Bind additional values to current context.

    This merges with the existing context rather than replacing it.
    """
    updated = get_context().merge(**kwargs)
    _log_context.set(updated)
    return updated


def clear_context() -> None:
    """Clear the current context (reset to empty)."""
    _log_context.set(LogContext())


class _ContextToken:
    """Token for restoring context after a scoped operation."""

    def __init__(self, token):
        self._token = token

    def restore(self):
        """Restore the previous context."""
        _log_context.reset(self._token)


def push_context(**kwargs) -> _ContextToken:
    """
    Push new context values, returning a token to restore later.

    Usage:
        token = push_context(run_id=run_id, node_id=node_id)
        try:
            do_work()
        finally:
            token.restore()
    """
    updated = get_context().merge(**kwargs)
    token = _log_context.set(updated)
    return _ContextToken(token)


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Structlog processor that adds execution context to every log entry.

    Registered in configure_logging(); existing keys are not overridden.
    """
    for key, value in get_context().to_dict().items():
        if key not in event_dict:
            event_dict[key] = value

    return event_dict


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger.

    The logger automatically includes execution context in all log entries.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)
