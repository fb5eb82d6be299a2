"""FastAPI Router - read API for automation run history.

ARCHITECTURE
────────────
::

    create_automation_router(session_factory) → APIRouter
      GET /automations/{automation_id}/runs   ─ runs of one automation, newest first
      GET /automation-runs/{run_id}           ─ run with its node runs
      GET /automation-node-types              ─ node type catalog, grouped

Handlers are plain ``def`` endpoints: the ORM session is synchronous and
FastAPI runs them in its threadpool.

Related modules:
    automation/repository.py — queries
    core/orm/tables.py       — rows mapped into the response models
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from autoflow.automation.node_types import NodeTypeCatalog, default_catalog
from autoflow.automation.repository import AutomationRepository
from autoflow.automation.status import RunStatus

# === PYDANTIC MODELS FOR API ===


class NodeRunResponse(BaseModel):
    """One node execution within a run."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    node_id: str
    node_type: str
    status: str
    attempts: int
    input: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class RunSummaryResponse(BaseModel):
    """Run list item."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    automation_id: str
    automation_version_id: int
    workspace_id: int
    trigger_event_key: str
    subject_type: str
    subject_id: str
    status: str
    pending_nodes: int
    dispatched_nodes: list[str] = Field(default_factory=list)
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    created_at: datetime


class RunDetailResponse(RunSummaryResponse):
    """Run with its node runs, in execution order."""

    node_runs: list[NodeRunResponse] = Field(default_factory=list)


class RunListResponse(BaseModel):
    items: list[RunSummaryResponse]
    total: int
    limit: int
    offset: int


def create_automation_router(
    session_factory: Callable[[], Session],
    catalog: NodeTypeCatalog | None = None,
    prefix: str = "",
    tags: list[str] | None = None,
) -> APIRouter:
    """Create the automation run history router.

    Args:
        session_factory: Zero-argument callable returning a new ``Session``
        catalog: Node type catalog served by ``/automation-node-types``
        prefix: URL prefix (e.g. ``/api/v1``)
        tags: OpenAPI tags (default: ["automations"])

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> app.include_router(create_automation_router(session_factory, prefix="/api/v1"))
    """
    catalog = catalog or default_catalog()
    router = APIRouter(prefix=prefix, tags=tags or ["automations"])

    @router.get("/automations/{automation_id}/runs", response_model=RunListResponse)
    def list_automation_runs(
        automation_id: str,
        status: str | None = None,
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
    ):
        """List runs of an automation, newest first.

        Examples:
        - GET /automations/{id}/runs
        - GET /automations/{id}/runs?status=failed
        """
        if status is not None:
            try:
                RunStatus(status)
            except ValueError:
                raise HTTPException(400, f"Invalid status: {status}") from None

        with session_factory() as session:
            repo = AutomationRepository(session)
            if repo.get_automation(automation_id) is None:
                raise HTTPException(404, f"Automation {automation_id} not found")
            rows, total = repo.list_runs(
                automation_id=automation_id, status=status, limit=limit, offset=offset
            )
            items = [RunSummaryResponse.model_validate(row) for row in rows]
        return RunListResponse(items=items, total=total, limit=limit, offset=offset)

    @router.get("/automation-runs/{run_id}", response_model=RunDetailResponse)
    def get_automation_run(run_id: str):
        """Get a run and its node runs."""
        with session_factory() as session:
            repo = AutomationRepository(session)
            run = repo.get_run(run_id)
            if run is None:
                raise HTTPException(404, f"Run {run_id} not found")
            summary = RunSummaryResponse.model_validate(run)
            node_runs = [NodeRunResponse.model_validate(n) for n in repo.list_node_runs(run_id)]
        return RunDetailResponse(**summary.model_dump(), node_runs=node_runs)

    @router.get("/automation-node-types")
    def list_node_types() -> dict[str, list[dict[str, Any]]]:
        """Node type catalog grouped into triggers, actions and conditions."""
        return catalog.to_grouped_dict()

    return router


__all__ = [
    "NodeRunResponse",
    "RunSummaryResponse",
    "RunDetailResponse",
    "RunListResponse",
    "create_automation_router",
]
