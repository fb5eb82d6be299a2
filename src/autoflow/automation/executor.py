"""Node Executor - executes exactly one graph node of one run.

Manifesto:
    Queues deliver at least once.  A node job may be retried after a crash,
    delivered twice by the broker, or arrive after a sibling already failed
    the run.  The executor makes all of these safe by doing everything for
    one node inside one transaction that holds the run row lock:

    - a run that is already terminal is left untouched
    - a node that already succeeded is never re-executed or re-dispatched
    - a node is enqueued at most once per run, so a join runs once
    - the pending counter and the run status change together, atomically
    - successors are enqueued only after the transaction commits

ARCHITECTURE
────────────
::

    NodeExecutor.execute_node(run_id, node_id, input)
      │
      ├── BEGIN; SELECT run FOR UPDATE          (SQLite: BEGIN IMMEDIATE)
      ├── run terminal?             → discard, no node run
      ├── node run already success? → return
      ├── resolve node, runner, config, context → mark run failed on error
      ├── node run: running, attempts += 1
      ├── runner.run(context, config, input)
      │     ├── fail / raise  → node run failed, run failed
      │     └── ok            → node run success
      ├── branch (branching runners only) → successors not yet dispatched
      ├── pending = max(0, pending - 1) + len(successors); 0 → completed
      ├── COMMIT
      └── queue.enqueue(successor, {**input, last_node}) for each successor

    Transient database errors (lock timeouts, lost connections) are not
    caught: the transaction rolls back and the queue retries the job.

Tags:
    autoflow, automation, executor, idempotency, locking, state-machine

Doc-Types:
    api-reference, architecture
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from autoflow.automation.context import ContextBuilder
from autoflow.automation.definition import AutomationDefinition
from autoflow.automation.graph import next_node_ids
from autoflow.automation.repository import AutomationRepository
from autoflow.automation.runners.registry import NodeRunnerRegistry
from autoflow.automation.status import NodeRunStatus, RunStatus, validate_run_transition
from autoflow.core.errors import (
    InvalidNodeConfigError,
    RunNotFoundError,
    SubjectNotFoundError,
    UnsupportedSubjectError,
)
from autoflow.core.orm.tables import AutomationNodeRunTable, AutomationRunTable
from autoflow.core.timestamps import utc_now
from autoflow.execution.queue import NodeQueue
from autoflow.framework.logging import bind_context, get_logger, push_context

logger = get_logger(__name__)


class ExecutionOutcome(str, Enum):
    """What a single ``execute_node`` call did."""

    DISCARDED = "discarded"  # Run was already terminal
    ALREADY_SUCCEEDED = "already_succeeded"  # Node run was already success
    SUCCEEDED = "succeeded"  # Node ran and succeeded
    FAILED = "failed"  # Node or its setup failed; run is failed


@dataclass(frozen=True)
class NodeExecution:
    """Result of one ``execute_node`` call, for callers and tests."""

    run_id: str
    node_id: str
    outcome: ExecutionOutcome
    run_status: str | None = None
    successors: list[str] = field(default_factory=list)
    error: str | None = None


class NodeExecutor:
    """Executes one node per call and dispatches its successors.

    Args:
        session_factory: Zero-argument callable returning a new ``Session``
        registry: Runner registry (frozen at startup)
        context_builder: Loads the run's subject into an ``AutomationContext``
        queue: Where successor executions are enqueued
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        registry: NodeRunnerRegistry,
        context_builder: ContextBuilder,
        queue: NodeQueue,
    ):
        self.session_factory = session_factory
        self.registry = registry
        self.context_builder = context_builder
        self.queue = queue

    def execute_node(
        self,
        run_id: str,
        node_id: str,
        input: Mapping[str, Any] | None = None,
    ) -> NodeExecution:
        """Execute ``node_id`` within ``run_id``.

        Raises:
            RunNotFoundError: The run does not exist
            sqlalchemy.exc.OperationalError: Transient database failure;
                nothing was committed and the job may be retried
        """
        input = dict(input or {})
        token = push_context(run_id=run_id, node_id=node_id)
        try:
            with self.session_factory() as session, session.begin():
                execution, successor_input = self._execute_locked(session, run_id, node_id, input)

            for successor_id in execution.successors:
                self.queue.enqueue(run_id, successor_id, successor_input)
            if execution.successors:
                logger.debug("automation.node.dispatched", successors=execution.successors)
            return execution
        finally:
            token.restore()

    # -- transaction body ------------------------------------------------------

    def _execute_locked(
        self,
        session: Session,
        run_id: str,
        node_id: str,
        input: dict[str, Any],
    ) -> tuple[NodeExecution, dict[str, Any]]:
        repo = AutomationRepository(session)

        run = repo.get_run(run_id, lock=True)
        if run is None:
            raise RunNotFoundError(run_id).with_context(node_id=node_id)

        bind_context(
            automation_id=run.automation_id,
            subject_type=run.subject_type,
            subject_id=run.subject_id,
        )

        if RunStatus(run.status).is_terminal:
            logger.info("automation.node.discarded", run_status=run.status)
            return self._result(run, node_id, ExecutionOutcome.DISCARDED), {}

        existing = repo.get_node_run(run.id, node_id)
        if existing is not None and existing.status == NodeRunStatus.SUCCESS.value:
            logger.info("automation.node.already_succeeded")
            return self._result(run, node_id, ExecutionOutcome.ALREADY_SUCCEEDED), {}

        definition = AutomationDefinition.from_dict(run.version.definition if run.version else None)
        node = definition.node(node_id)
        if node is None:
            return self._fail_run(run, node_id, f"Node [{node_id}] not found."), {}

        if not isinstance(node.config, Mapping) or not self.registry.has(node.type):
            return self._fail_run(run, node_id, f"Unsupported node type [{node.type}]."), {}

        runner = self.registry.get(node.type)
        try:
            config = runner.parse_config(node.config)
        except InvalidNodeConfigError as e:
            return self._fail_run(
                run, node_id, f"Invalid configuration for node [{node_id}]: {e.details}"
            ), {}

        try:
            context = self.context_builder.build(run.subject_type, run.subject_id)
        except UnsupportedSubjectError:
            return self._fail_run(
                run, node_id, f"Unsupported subject type [{run.subject_type}]."
            ), {}
        except SubjectNotFoundError as e:
            return self._fail_run(run, node_id, e.message), {}

        node_run = existing or repo.create_node_run(run.id, node_id, node.type)
        node_run.node_type = node.type
        node_run.status = NodeRunStatus.RUNNING.value
        node_run.attempts = (node_run.attempts or 0) + 1
        node_run.input = input
        node_run.output = None
        node_run.error = None
        node_run.started_at = utc_now()
        node_run.finished_at = None
        session.flush()

        bind_context(node_type=node.type, attempt=node_run.attempts)
        logger.info("automation.node.started")

        try:
            result = runner.run(context, config, input)
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.exception("automation.node.raised", error=error)
            self._finish_node_run(node_run, NodeRunStatus.FAILED, error=error)
            return self._fail_run(run, node_id, error), {}

        if not result.success:
            error = result.error_message()
            self._finish_node_run(node_run, NodeRunStatus.FAILED, output=result.output, error=error)
            logger.warning("automation.node.failed", error=error)
            return self._fail_run(run, node_id, f"Node [{node_id}] failed: {error}"), {}

        self._finish_node_run(node_run, NodeRunStatus.SUCCESS, output=result.output)

        branch = None
        if runner.branching:
            branch = str(result.output.get("branch", "true"))
        dispatched = list(run.dispatched_nodes or [])
        successors = [s for s in next_node_ids(definition.edges, node_id, branch) if s not in dispatched]
        # Plain JSON columns do not track in-place mutation
        run.dispatched_nodes = dispatched + successors

        run.pending_nodes = max(0, (run.pending_nodes or 0) - 1) + len(successors)
        if RunStatus(run.status) == RunStatus.PENDING:
            validate_run_transition(run.status, RunStatus.RUNNING)
            run.status = RunStatus.RUNNING.value
        if run.pending_nodes == 0:
            validate_run_transition(run.status, RunStatus.COMPLETED)
            run.status = RunStatus.COMPLETED.value
            run.finished_at = utc_now()
            logger.info("automation.run.completed")

        logger.info(
            "automation.node.succeeded",
            branch=branch,
            successors=successors,
            pending_nodes=run.pending_nodes,
        )

        successor_input = {
            **input,
            "last_node": {"id": node_id, "type": node.type, "output": result.output},
        }
        return (
            self._result(run, node_id, ExecutionOutcome.SUCCEEDED, successors=successors),
            successor_input,
        )

    # -- helpers ---------------------------------------------------------------

    @staticmethod
    def _finish_node_run(
        node_run: AutomationNodeRunTable,
        status: NodeRunStatus,
        *,
        output: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        node_run.status = status.value
        node_run.output = output
        node_run.error = error
        node_run.finished_at = utc_now()

    def _fail_run(self, run: AutomationRunTable, node_id: str, error: str) -> NodeExecution:
        """Terminal failure: clear pending work and record the error.

        Sibling executions already queued find the run terminal and are
        discarded.
        """
        validate_run_transition(run.status, RunStatus.FAILED)
        run.pending_nodes = 0
        run.status = RunStatus.FAILED.value
        run.error = error
        run.finished_at = utc_now()
        logger.warning("automation.run.failed", error=error)
        return self._result(run, node_id, ExecutionOutcome.FAILED, error=error)

    @staticmethod
    def _result(
        run: AutomationRunTable,
        node_id: str,
        outcome: ExecutionOutcome,
        *,
        successors: list[str] | None = None,
        error: str | None = None,
    ) -> NodeExecution:
        return NodeExecution(
            run_id=run.id,
            node_id=node_id,
            outcome=outcome,
            run_status=run.status,
            successors=list(successors or []),
            error=error,
        )


__all__ = ["ExecutionOutcome", "NodeExecution", "NodeExecutor"]
