"""Tests for the Celery app and the ``autoflow.execute_node`` task."""

from __future__ import annotations

import pytest

pytest.importorskip("celery")

from autoflow.core.errors import TransientError  # noqa: E402
from autoflow.core.settings import AutomationSettings  # noqa: E402
from autoflow.execution import tasks  # noqa: E402
from autoflow.execution.queue import EXECUTE_NODE_TASK  # noqa: E402


@pytest.fixture
def wired_executor(executor):
    tasks.set_node_executor(executor)
    yield executor
    tasks.set_node_executor(None)


class TestCeleryApp:
    def test_reliability_settings(self):
        app = tasks.create_celery_app(
            AutomationSettings(_env_file=None, celery_broker_url="memory://", celery_queue="q1")
        )
        assert app.conf.task_acks_late is True
        assert app.conf.worker_prefetch_multiplier == 1
        assert app.conf.task_default_queue == "q1"
        assert app.conf.task_serializer == "json"

    def test_task_registered(self):
        assert EXECUTE_NODE_TASK in tasks.app.tasks


class TestExecuteNodeTask:
    def test_unwired_executor_is_retried(self):
        tasks.set_node_executor(None)
        with pytest.raises(TransientError, match="set_node_executor") as excinfo:
            tasks.get_node_executor()
        assert excinfo.value.retryable
        assert TransientError in tasks.execute_node.autoretry_for

    def test_delegates_to_executor(self, wired_executor, start_linear, queue, run_row):
        run_id = start_linear("a", "b")
        item = queue.pop()

        result = tasks.execute_node.apply(args=[item.run_id, item.node_id, item.input]).get()

        assert result == {
            "run_id": run_id,
            "node_id": "a",
            "outcome": "succeeded",
            "run_status": "running",
            "successors": ["b"],
        }
        assert [q.node_id for q in queue.snapshot()] == ["b"]
