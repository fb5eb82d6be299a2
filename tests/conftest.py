"""
Shared pytest fixtures for autoflow tests.

This module provides:
- A file-backed SQLite engine per test (tables created, WAL + BEGIN IMMEDIATE)
- Session factory, in-memory subject repository and node queue
- Test runners (recording, failing, raising) and a registry holding them
- ``make_automation`` / ``run_row`` / ``node_rows`` helpers

Usage:
    def test_something(executor, queue, make_automation):
        automation_id = make_automation(definition)
        ...
"""

from __future__ import annotations

import threading
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar

import pytest

from autoflow.automation.context import AutomationContext, ContextBuilder
from autoflow.automation.definition import AutomationDefinition
from autoflow.automation.engine import AutomationEngine
from autoflow.automation.executor import NodeExecutor
from autoflow.automation.repository import AutomationRepository
from autoflow.automation.result import NodeResult
from autoflow.automation.runners.base import NodeRunner
from autoflow.automation.runners.condition import ConditionNodeRunner
from autoflow.automation.runners.registry import NodeRunnerRegistry
from autoflow.automation.subjects import (
    Actor,
    Contact,
    InMemorySubjectRepository,
    Invoice,
    WorkflowJob,
    WorkflowStage,
)
from autoflow.core.orm import AutomationBase, automation_session_factory, create_automation_engine
from autoflow.core.settings import reset_settings
from autoflow.execution.queue import InMemoryNodeQueue
from autoflow.framework.logging import clear_context


# =============================================================================
# Test runners
# =============================================================================


class RecordingRunner(NodeRunner):
    """Succeeds and records every call."""

    type: ClassVar[str] = "test.record"

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def run(self, context: AutomationContext, config: Any, input: dict[str, Any]) -> NodeResult:
        with self._lock:
            self.calls.append({"config": config, "input": input, "subject_id": context.subject.subject_id})
        return NodeResult.ok({"recorded": config.get("label", True)})


class FailingRunner(NodeRunner):
    """Returns a failed result."""

    type: ClassVar[str] = "test.fail"

    def run(self, context: AutomationContext, config: Any, input: dict[str, Any]) -> NodeResult:
        return NodeResult.fail(config.get("error", "boom"), {"attempted": True})


class RaisingRunner(NodeRunner):
    """Raises mid-execution."""

    type: ClassVar[str] = "test.raise"

    def run(self, context: AutomationContext, config: Any, input: dict[str, Any]) -> NodeResult:
        raise RuntimeError("kaboom")


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings_and_context(monkeypatch):
    """Fresh settings cache and empty log context for every test."""
    for var in ("AUTOFLOW_DATABASE_URL", "AUTOFLOW_QUEUE_BACKEND", "AUTOFLOW_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    clear_context()
    yield
    reset_settings()
    clear_context()


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'autoflow.db'}"


@pytest.fixture
def db_engine(database_url):
    """File-backed SQLite engine with all tables created."""
    engine = create_automation_engine(database_url, busy_timeout=10.0)
    AutomationBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return automation_session_factory(db_engine)


# =============================================================================
# Subjects
# =============================================================================


@pytest.fixture
def subjects() -> InMemorySubjectRepository:
    """Workspace 1: one contact, two invoices, one job in stage ``stage-won``."""
    repo = InMemorySubjectRepository()
    repo.add_stage(WorkflowStage(id="stage-new", name="New", workflow_id="wf-1"))
    repo.add_stage(WorkflowStage(id="stage-won", name="Won", workflow_id="wf-1"))
    repo.add_contact(Contact(id="c1", name="Ana Lima", email="ana@example.com", mobile="+5511999990000"))
    repo.add_invoice(Invoice(
        id="42",
        workspace_id=1,
        document_number="INV-0042",
        total_amount=Decimal("500.00"),
        issue_date=date(2026, 3, 1),
        due_date=date(2026, 3, 31),
        status="open",
        contact_id="c1",
    ))
    repo.add_invoice(Invoice(id="7", workspace_id=1, document_number="INV-0007", total_amount=50))
    repo.add_workflow_job(WorkflowJob(
        id="job-1",
        workspace_id=1,
        workflow_id="wf-1",
        workflow_stage_id="stage-won",
        contact_id="c1",
        invoice_id="42",
        notes="Call back",
        priority="high",
        started_at=datetime(2026, 3, 2, 9, 30),
        metadata={"source": "web"},
    ))
    repo.add_user(Actor(id=5, name="Bruno", email="bruno@example.com"))
    return repo


@pytest.fixture
def builder(subjects) -> ContextBuilder:
    return ContextBuilder(subjects)


@pytest.fixture
def invoice_context(builder) -> AutomationContext:
    return builder.build("invoice", "42")


# =============================================================================
# Execution
# =============================================================================


@pytest.fixture
def recorder() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def registry(recorder) -> NodeRunnerRegistry:
    registry = NodeRunnerRegistry([ConditionNodeRunner(), recorder, FailingRunner(), RaisingRunner()])
    registry.freeze()
    return registry


@pytest.fixture
def queue() -> InMemoryNodeQueue:
    return InMemoryNodeQueue()


@pytest.fixture
def executor(session_factory, registry, builder, queue) -> NodeExecutor:
    return NodeExecutor(session_factory, registry, builder, queue)


@pytest.fixture
def automation_engine(session_factory, builder, queue) -> AutomationEngine:
    return AutomationEngine(session_factory, builder, queue)


# =============================================================================
# Helpers
# =============================================================================


@pytest.fixture
def make_automation(session_factory):
    """Create an automation (version 1) and optionally a trigger; returns its id."""

    def _make(
        definition: dict[str, Any] | AutomationDefinition,
        *,
        workspace_id: int = 1,
        event_key: str | None = None,
        workflow_stage_id: str | None = None,
        is_active: bool = True,
        name: str = "Test automation",
    ) -> str:
        with session_factory() as session, session.begin():
            repo = AutomationRepository(session)
            automation = repo.create_automation(
                workspace_id=workspace_id,
                name=name,
                definition=definition,
                is_active=is_active,
            )
            if event_key is not None:
                repo.add_trigger(automation, event_key, workflow_stage_id=workflow_stage_id)
            return automation.id

    return _make


@pytest.fixture
def run_row(session_factory):
    """Fetch a run row (detached, attributes loaded)."""

    def _get(run_id: str):
        with session_factory() as session:
            return AutomationRepository(session).get_run(run_id)

    return _get


@pytest.fixture
def node_rows(session_factory):
    """Node runs of a run as ``{node_id: row}``."""

    def _get(run_id: str) -> dict[str, Any]:
        with session_factory() as session:
            return {n.node_id: n for n in AutomationRepository(session).list_node_runs(run_id)}

    return _get


def linear_definition(*node_ids: str, node_type: str = "test.record") -> dict[str, Any]:
    """``n1 → n2 → …`` graph of ``node_type`` nodes."""
    nodes = [{"id": n, "type": node_type, "config": {"label": n}} for n in node_ids]
    edges = [{"from": a, "to": b} for a, b in zip(node_ids, node_ids[1:])]
    return {"nodes": nodes, "edges": edges}


@pytest.fixture
def linear():
    return linear_definition


@pytest.fixture
def start_linear(make_automation, automation_engine, linear):
    """Start an invoice run over a linear graph of recording nodes."""

    def _start(*node_ids: str) -> str:
        automation_id = make_automation(linear(*node_ids))
        return automation_engine.start_run(
            automation_id, "invoice", "42", "manual", entry_node_ids=[node_ids[0]]
        )

    return _start
