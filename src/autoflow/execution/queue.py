"""Node Queue - how node executions get scheduled.

Manifesto:
    The executor never calls itself.  Finishing a node *enqueues* its
    successors; some worker picks each one up later and calls
    ``NodeExecutor.execute_node`` again.  This is a work-queue fan-out,
    so the queue is the only seam between "what runs next" and "where it
    runs".

ARCHITECTURE
────────────
::

    NodeQueue (Protocol)
      └── .enqueue(run_id, node_id, input)

    Implementations:
      InMemoryNodeQueue  ─ deque + lock, explicit drain loop  (tests / dev)
      CeleryNodeQueue    ─ app.send_task("autoflow.execute_node")  (production)

    queue_from_settings(settings, celery_app=None)

Tags:
    autoflow, execution, queue, fan-out, celery

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from autoflow.core.settings import AutomationSettings, QueueBackend
from autoflow.framework.logging import get_logger

if TYPE_CHECKING:
    from celery import Celery

    from autoflow.automation.executor import NodeExecutor

logger = get_logger(__name__)

EXECUTE_NODE_TASK = "autoflow.execute_node"


@dataclass(frozen=True)
class QueuedNode:
    """One unit of work: execute ``node_id`` of ``run_id`` with ``input``."""

    run_id: str
    node_id: str
    input: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class NodeQueue(Protocol):
    """Anything that can schedule a node execution."""

    def enqueue(self, run_id: str, node_id: str, input: dict[str, Any]) -> None: ...


class InMemoryNodeQueue:
    """Thread-safe FIFO queue with an explicit drain loop.

    Example:
        >>> queue = InMemoryNodeQueue()
        >>> executor = NodeExecutor(session_factory, registry, builder, queue)
        >>> engine.start_run(automation_id, "invoice", "42", "invoice.created")
        >>> queue.drain(executor)
        3
    """

    def __init__(self) -> None:
        self._items: deque[QueuedNode] = deque()
        self._lock = threading.Lock()
        self.enqueued_total = 0

    def enqueue(self, run_id: str, node_id: str, input: dict[str, Any]) -> None:
        item = QueuedNode(run_id=run_id, node_id=node_id, input=dict(input or {}))
        with self._lock:
            self._items.append(item)
            self.enqueued_total += 1
        logger.debug("automation.queue.enqueued", backend="memory", queued_node_id=node_id)

    def pop(self) -> QueuedNode | None:
        with self._lock:
            return self._items.popleft() if self._items else None

    def push_front(self, item: QueuedNode) -> None:
        with self._lock:
            self._items.appendleft(item)

    def snapshot(self) -> list[QueuedNode]:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def drain(self, executor: NodeExecutor, max_steps: int = 1000) -> int:
        """Execute queued nodes until the queue is empty.

        Successors enqueued while draining are processed in the same loop.
        If the executor raises, the job goes back to the head of the queue
        and the exception propagates, like a broker redelivering it.

        Args:
            executor: Node executor to hand each job to
            max_steps: Upper bound on executions, guards against cyclic graphs

        Returns:
            Number of executions performed.

        Raises:
            RuntimeError: ``max_steps`` reached with work still queued
        """
        steps = 0
        while True:
            item = self.pop()
            if item is None:
                return steps
            if steps >= max_steps:
                self.push_front(item)
                raise RuntimeError(f"Queue drain stopped after {max_steps} steps with work remaining")
            try:
                executor.execute_node(item.run_id, item.node_id, item.input)
            except Exception:
                self.push_front(item)
                raise
            steps += 1


class CeleryNodeQueue:
    """Schedules node executions as Celery tasks.

    Args:
        celery_app: Configured Celery instance (see ``autoflow.execution.tasks``)
        queue: Broker queue name
        task_name: Registered task name
    """

    def __init__(
        self,
        celery_app: Celery,
        queue: str = "automations",
        task_name: str = EXECUTE_NODE_TASK,
    ):
        self.celery_app = celery_app
        self.queue = queue
        self.task_name = task_name

    def enqueue(self, run_id: str, node_id: str, input: dict[str, Any]) -> None:
        result = self.celery_app.send_task(
            self.task_name,
            args=[run_id, node_id, dict(input or {})],
            queue=self.queue,
        )
        logger.debug(
            "automation.queue.enqueued",
            backend="celery",
            queued_node_id=node_id,
            task_id=getattr(result, "id", None),
        )


def queue_from_settings(
    settings: AutomationSettings,
    celery_app: Celery | None = None,
) -> NodeQueue:
    """Build the queue selected by ``settings.queue_backend``."""
    if settings.queue_backend == QueueBackend.CELERY:
        if celery_app is None:
            from autoflow.execution.tasks import app as celery_app
        return CeleryNodeQueue(celery_app, queue=settings.celery_queue)
    return InMemoryNodeQueue()


__all__ = [
    "EXECUTE_NODE_TASK",
    "QueuedNode",
    "NodeQueue",
    "InMemoryNodeQueue",
    "CeleryNodeQueue",
    "queue_from_settings",
]
