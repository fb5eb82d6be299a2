"""Celery task definitions for autoflow node execution.

Provides the Celery app and the ``autoflow.execute_node`` task that
:class:`~autoflow.execution.queue.CeleryNodeQueue` sends work to.  A worker
process running ``celery -A autoflow.execution.tasks worker`` picks them up.

Setup::

    # Start a worker on the automations queue:
    celery -A autoflow.execution.tasks worker --loglevel=info -Q automations

    # Required worker bootstrap: the host application owns the subject
    # repository, so it must wire the executor in every worker process,
    # e.g. from a worker_process_init handler:
    from autoflow.execution.tasks import set_node_executor
    set_node_executor(NodeExecutor(session_factory, registry, builder, queue))

    # Until then every task raises TransientError and is retried with
    # backoff, so messages are not acked away.

Configuration::

    AUTOFLOW_CELERY_BROKER_URL      (default: redis://localhost:6379/0)
    AUTOFLOW_CELERY_RESULT_BACKEND  (default: redis://localhost:6379/1)
    AUTOFLOW_CELERY_QUEUE           (default: automations)
    AUTOFLOW_CELERY_MAX_RETRIES     (default: 5)

Delivery is at least once: ``task_acks_late`` keeps a job on the broker
until it finishes, and the executor's idempotency check makes the
redelivery safe.  Database ``OperationalError`` (lock timeout, lost
connection) is retried with exponential backoff.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from celery import Celery
from celery.signals import worker_process_init
from sqlalchemy.exc import OperationalError

from autoflow.core.errors import ErrorCategory, TransientError
from autoflow.core.settings import AutomationSettings, get_settings
from autoflow.execution.queue import EXECUTE_NODE_TASK
from autoflow.framework.logging import configure_logging, get_logger

if TYPE_CHECKING:
    from autoflow.automation.executor import NodeExecutor

logger = get_logger(__name__)


# --------------------------------------------------------------------------- #
# Celery app factory
# --------------------------------------------------------------------------- #


def create_celery_app(settings: AutomationSettings | None = None) -> Celery:
    """Build the Celery app from ``AUTOFLOW_*`` settings."""
    settings = settings or get_settings()
    celery_app = Celery(
        "autoflow",
        broker=settings.celery_broker_url,
        backend=settings.celery_result_backend,
    )
    celery_app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
        task_default_queue=settings.celery_queue,
    )
    return celery_app


app = create_celery_app()


# --------------------------------------------------------------------------- #
# Executor wiring
# --------------------------------------------------------------------------- #

_node_executor: NodeExecutor | None = None


def set_node_executor(executor: NodeExecutor | None) -> None:
    """Install the executor the task delegates to (``None`` to reset)."""
    global _node_executor
    _node_executor = executor


def get_node_executor() -> NodeExecutor:
    """The wired executor.

    Raises:
        TransientError: Nothing wired yet; the task retries instead of
            acking the message away
    """
    if _node_executor is None:
        raise TransientError(
            "No node executor configured; call set_node_executor() at worker startup",
            category=ErrorCategory.CONFIG,
        )
    return _node_executor


@worker_process_init.connect
def _configure_worker_logging(**_: Any) -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, format=settings.log_format)


# --------------------------------------------------------------------------- #
# Task definitions
# --------------------------------------------------------------------------- #


@app.task(
    name=EXECUTE_NODE_TASK,
    bind=True,
    acks_late=True,
    autoretry_for=(OperationalError, TransientError),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_jitter=True,
    max_retries=get_settings().celery_max_retries,
)
def execute_node(self, run_id: str, node_id: str, input: dict[str, Any] | None = None) -> dict[str, Any]:
    """Execute one node of one automation run."""
    logger.info(
        "automation.task.received",
        run_id=run_id,
        node_id=node_id,
        retries=self.request.retries,
    )
    execution = get_node_executor().execute_node(run_id, node_id, input or {})
    return {
        "run_id": execution.run_id,
        "node_id": execution.node_id,
        "outcome": execution.outcome.value,
        "run_status": execution.run_status,
        "successors": execution.successors,
    }


__all__ = [
    "app",
    "create_celery_app",
    "execute_node",
    "get_node_executor",
    "set_node_executor",
]
