"""Run and node-run status - the automation state machines.

Manifesto:
    A run moves forward only.  Once it reaches ``completed`` or ``failed``
    nothing may touch its status or pending count again, and no new node
    runs are created for it.  Encoding the legal moves in one table lets
    the executor and the trigger engine share a single source of truth.

Tags:
    autoflow, automation, runs, status, state-machine

Doc-Types:
    api-reference
"""

from __future__ import annotations

from enum import Enum

from autoflow.core.errors import InvalidTransitionError


class RunStatus(str, Enum):
    """Automation run status.

    Valid transition graph::

        PENDING   → RUNNING | COMPLETED | FAILED
        RUNNING   → COMPLETED | FAILED
        COMPLETED → (terminal)
        FAILED    → (terminal)
    """

    PENDING = "pending"  # Created, entry nodes not yet dispatched
    RUNNING = "running"  # At least one node execution outstanding
    COMPLETED = "completed"  # No pending nodes remain
    FAILED = "failed"  # A node failed or the graph was misconfigured

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.COMPLETED, RunStatus.FAILED)


class NodeRunStatus(str, Enum):
    """Status of a single node execution within a run."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


RUN_VALID_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.PENDING: frozenset({
        RunStatus.RUNNING,
        RunStatus.COMPLETED,  # no entry nodes
        RunStatus.FAILED,
    }),
    RunStatus.RUNNING: frozenset({
        RunStatus.COMPLETED,
        RunStatus.FAILED,
    }),
    RunStatus.COMPLETED: frozenset(),  # terminal
    RunStatus.FAILED: frozenset(),  # terminal
}


def validate_run_transition(current: RunStatus | str, target: RunStatus | str) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal.

    Staying in ``running`` is allowed so the executor can re-assert the
    status after every node without special-casing.

    Example:
        >>> validate_run_transition(RunStatus.RUNNING, RunStatus.COMPLETED)
        >>> validate_run_transition(RunStatus.COMPLETED, RunStatus.RUNNING)
        Traceback (most recent call last):
        ...
        autoflow.core.errors.InvalidTransitionError: Invalid RunStatus transition: completed → running
    """
    current = RunStatus(current)
    target = RunStatus(target)
    if current == target == RunStatus.RUNNING:
        return
    if target not in RUN_VALID_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current.value, target.value, "RunStatus")


__all__ = [
    "RunStatus",
    "NodeRunStatus",
    "RUN_VALID_TRANSITIONS",
    "validate_run_transition",
]
