"""Node Result - envelope returned by every node runner.

ARCHITECTURE
────────────
::

    NodeResult
      ├── .ok(output)            → success
      └── .fail(error, output)   → structured failure (no exception)

A runner reports an expected failure (HTTP 500 from a webhook, a
missing recipient) by returning ``NodeResult.fail``.  Unexpected
problems are raised; the executor records both the same way but logs
them differently.

Tags:
    autoflow, automation, node-result, envelope

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class NodeResult:
    """
    Outcome of running one node.

    Attributes:
        success: Whether the node completed successfully
        output: JSON-serializable data recorded on the node run and passed
            to successors as ``last_node.output``
        error: Failure message (only meaningful when ``success`` is False)
    """

    success: bool
    output: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def ok(cls, output: dict[str, Any] | None = None) -> NodeResult:
        """Create a successful result."""
        return cls(success=True, output=dict(output or {}))

    @classmethod
    def fail(cls, error: str | None = None, output: dict[str, Any] | None = None) -> NodeResult:
        """Create a failed result.

        ``error`` may be omitted when the output already carries an
        ``error`` key; see :meth:`error_message`.
        """
        return cls(success=False, output=dict(output or {}), error=error)

    def error_message(self) -> str:
        """Failure text recorded on the node run."""
        if self.error:
            return self.error
        from_output = self.output.get("error")
        if from_output:
            return str(from_output)
        return "Node failed"

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "output": self.output, "error": self.error}
