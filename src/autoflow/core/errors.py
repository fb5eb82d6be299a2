"""
Structured error types for the automation engine.

Every failure the engine can raise carries a category, a retryable flag and a
structured context (run, node, automation, subject) so that the queue layer
can decide between "retry the job" and "let the run stay failed", and so that
log entries stay queryable.

Manifesto:
    - **Typed Error Hierarchy:** Configuration, lookup, validation and
      transient failures are distinct types
    - **Explicit Retry Semantics:** Each error knows if the job may be retried
    - **Rich Context:** Errors carry run/node identifiers for logging
    - **Error Chaining:** Original exceptions are preserved as ``cause``

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────────┐
        │                       AutomationError                          │
        │  (category, retryable, retry_after, context, cause)            │
        ├────────────────────────────────────────────────────────────────┤
        │                                                                │
        │  ConfigError               NotFoundError       TransientError   │
        │  (CONFIG, never retried)   (NOT_FOUND)         (retryable)      │
        │       │                        │                                │
        │  RunnerNotFoundError       RunNotFoundError                     │
        │  InvalidNodeConfigError    SubjectNotFoundError                 │
        │  UnsupportedSubjectError   AutomationNotFoundError              │
        │  RegistryFrozenError                                            │
        │                                                                │
        │  InvalidEventPayloadError (VALIDATION)                          │
        └────────────────────────────────────────────────────────────────┘

        InvalidTransitionError (ValueError) — illegal run status change

Error taxonomy inside a run:
    Configuration errors (unregistered node type, malformed config, unknown
    subject type, missing node) are terminal for the run and never retried.
    Runner failures and runner exceptions are terminal for the run as well.
    Transient infrastructure errors propagate out of the executor so the
    queue retries the job; the idempotency check makes the retry safe.

Examples:
    >>> error = RunnerNotFoundError("x")
    >>> error.retryable
    False
    >>> str(error)
    'Runner not found for node type [x].'

    >>> error = TransientError("lock timeout").with_context(run_id="r-1")
    >>> error.to_dict()["context"]
    {'run_id': 'r-1'}

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context,
    autoflow, automation

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"  # Misconfigured graph, runner, or subject type
    NOT_FOUND = "NOT_FOUND"  # Missing run, subject, automation
    VALIDATION = "VALIDATION"  # Bad event payload, bad node config
    NODE = "NODE"  # Runner reported failure or raised
    DATABASE = "DATABASE"  # Lock timeout, connection loss
    NETWORK = "NETWORK"  # Outbound HTTP from action nodes
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        run_id: Automation run identifier
        node_id: Graph node identifier
        automation_id: Automation identifier
        subject_type: Subject type of the run (``invoice``, ``workflow_job``)
        subject_id: Subject identifier
        metadata: Additional key-value pairs
    """

    run_id: str | None = None
    node_id: str | None = None
    automation_id: str | None = None
    subject_type: str | None = None
    subject_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["run_id", "node_id", "automation_id", "subject_type", "subject_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class AutomationError(Exception):
    """
    Base exception for all automation engine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so the
    common cases need no keyword arguments.

    Examples:
        >>> error = AutomationError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> AutomationError:
        """
        Add context to this error (fluent API).

        Usage:
            raise RunNotFoundError(run_id).with_context(node_id="send")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (Never Retryable)
# =============================================================================


class ConfigError(AutomationError):
    """Misconfiguration that no amount of retrying will fix."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class RunnerNotFoundError(ConfigError):
    """No runner is registered for a node type."""

    def __init__(self, node_type: str, **kwargs: Any):
        super().__init__(f"Runner not found for node type [{node_type}].", **kwargs)
        self.node_type = node_type


class InvalidNodeConfigError(ConfigError):
    """A node's config does not satisfy its runner's config model."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, node_type: str, details: str, **kwargs: Any):
        super().__init__(f"Invalid configuration for node type [{node_type}]: {details}", **kwargs)
        self.node_type = node_type
        self.details = details


class UnsupportedSubjectError(ConfigError):
    """The run's subject type has no context loader."""

    def __init__(self, subject_type: str, **kwargs: Any):
        super().__init__(f"Unsupported subject type [{subject_type}].", **kwargs)
        self.subject_type = subject_type


class RegistryFrozenError(ConfigError):
    """Registration attempted after the registry was frozen at startup."""


# =============================================================================
# LOOKUP ERRORS
# =============================================================================


class NotFoundError(AutomationError):
    """A referenced record does not exist."""

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = False


class RunNotFoundError(NotFoundError):
    """The automation run referenced by a queued job does not exist.

    Raised out of the executor: this is a programming or data error and is
    not absorbed into any run state.
    """

    def __init__(self, run_id: str, **kwargs: Any):
        super().__init__(f"Automation run [{run_id}] not found.", **kwargs)
        self.context.run_id = run_id


class SubjectNotFoundError(NotFoundError):
    """The subject record a run points at is gone."""

    def __init__(self, subject_type: str, subject_id: str, **kwargs: Any):
        super().__init__(f"Subject [{subject_type}:{subject_id}] not found.", **kwargs)
        self.context.subject_type = subject_type
        self.context.subject_id = subject_id


class AutomationNotFoundError(NotFoundError):
    """No automation (or no published version) exists for the given id."""

    def __init__(self, automation_id: str, **kwargs: Any):
        super().__init__(f"Automation [{automation_id}] has no published version.", **kwargs)
        self.context.automation_id = automation_id


# =============================================================================
# VALIDATION / TRANSIENT
# =============================================================================


class InvalidEventPayloadError(AutomationError):
    """A domain event arrived without the identifiers it must carry."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class TransientError(AutomationError):
    """Temporary infrastructure error; the queued job may be retried."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


class InvalidTransitionError(ValueError):
    """Raised when an illegal run status transition is attempted.

    Transition validation is deliberately strict: terminal states have no
    outgoing transitions.
    """

    def __init__(self, current: str, target: str, enum_name: str = "Status") -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid {enum_name} transition: {current} → {target}")

