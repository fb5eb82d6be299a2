"""Automation repository - ORM access to automations, runs and node runs.

All methods operate on the caller's session and never commit; the
executor and the trigger engine own transaction boundaries.

Tags:
    autoflow, repository, automation, runs

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from autoflow.automation.definition import AutomationDefinition
from autoflow.core.orm.tables import (
    AutomationNodeRunTable,
    AutomationRunTable,
    AutomationTable,
    AutomationTriggerTable,
    AutomationVersionTable,
)


class AutomationRepository:
    """Session-scoped data access for the automation tables."""

    def __init__(self, session: Session):
        self.session = session

    # -- reads -----------------------------------------------------------------

    def get_automation(self, automation_id: str) -> AutomationTable | None:
        return self.session.get(AutomationTable, automation_id)

    def latest_version(self, automation_id: str) -> AutomationVersionTable | None:
        """Highest version number of an automation."""
        stmt = (
            select(AutomationVersionTable)
            .where(AutomationVersionTable.automation_id == automation_id)
            .order_by(AutomationVersionTable.version.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def active_triggers(
        self,
        workspace_id: int,
        event_key: str,
        workflow_stage_id: str | None = None,
    ) -> list[AutomationTriggerTable]:
        """Active triggers of a workspace for an event, optionally narrowed by stage."""
        stmt = (
            select(AutomationTriggerTable)
            .join(AutomationTable, AutomationTable.id == AutomationTriggerTable.automation_id)
            .where(
                AutomationTriggerTable.workspace_id == workspace_id,
                AutomationTriggerTable.event_key == event_key,
                AutomationTriggerTable.is_active.is_(True),
                AutomationTable.is_active.is_(True),
            )
            .order_by(AutomationTriggerTable.created_at, AutomationTriggerTable.id)
        )
        if workflow_stage_id is not None:
            stmt = stmt.where(AutomationTriggerTable.workflow_stage_id == workflow_stage_id)
        return list(self.session.scalars(stmt))

    def get_run(self, run_id: str, *, lock: bool = False) -> AutomationRunTable | None:
        """Fetch a run; ``lock=True`` issues ``SELECT ... FOR UPDATE``.

        SQLite ignores ``FOR UPDATE``; there the engine's ``BEGIN IMMEDIATE``
        already holds the database write lock for the transaction.
        """
        stmt = select(AutomationRunTable).where(AutomationRunTable.id == run_id)
        if lock:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).first()

    def get_node_run(self, run_id: str, node_id: str) -> AutomationNodeRunTable | None:
        stmt = select(AutomationNodeRunTable).where(
            AutomationNodeRunTable.automation_run_id == run_id,
            AutomationNodeRunTable.node_id == node_id,
        )
        return self.session.scalars(stmt).first()

    def list_node_runs(self, run_id: str) -> list[AutomationNodeRunTable]:
        stmt = (
            select(AutomationNodeRunTable)
            .where(AutomationNodeRunTable.automation_run_id == run_id)
            .order_by(AutomationNodeRunTable.started_at, AutomationNodeRunTable.created_at)
        )
        return list(self.session.scalars(stmt))

    def list_runs(
        self,
        *,
        automation_id: str | None = None,
        workspace_id: int | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AutomationRunTable], int]:
        """List runs, newest first.  Returns ``(rows, total)``."""
        filters = []
        if automation_id is not None:
            filters.append(AutomationRunTable.automation_id == automation_id)
        if workspace_id is not None:
            filters.append(AutomationRunTable.workspace_id == workspace_id)
        if status is not None:
            filters.append(AutomationRunTable.status == status)

        total = self.session.scalar(
            select(func.count()).select_from(AutomationRunTable).where(*filters)
        ) or 0
        stmt = (
            select(AutomationRunTable)
            .where(*filters)
            .order_by(AutomationRunTable.created_at.desc(), AutomationRunTable.id)
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(stmt)), total

    # -- writes ----------------------------------------------------------------

    def create_automation(
        self,
        *,
        workspace_id: int,
        name: str,
        definition: AutomationDefinition | Mapping[str, Any],
        created_by: int | None = None,
        is_active: bool = True,
    ) -> AutomationTable:
        """Create an automation together with its version 1."""
        automation = AutomationTable(workspace_id=workspace_id, name=name, is_active=is_active)
        self.session.add(automation)
        self.session.flush()
        self.publish_version(automation, definition, created_by=created_by)
        return automation

    def publish_version(
        self,
        automation: AutomationTable,
        definition: AutomationDefinition | Mapping[str, Any],
        *,
        created_by: int | None = None,
    ) -> AutomationVersionTable:
        """Append an immutable version; existing versions are never edited."""
        if isinstance(definition, AutomationDefinition):
            document = definition.to_dict()
        else:
            document = dict(definition)
        latest = self.latest_version(automation.id)
        number = (latest.version + 1) if latest is not None else 1
        version = AutomationVersionTable(
            automation_id=automation.id,
            version=number,
            definition=document,
            created_by=created_by,
        )
        self.session.add(version)
        automation.published_version = number
        self.session.flush()
        return version

    def add_trigger(
        self,
        automation: AutomationTable,
        event_key: str,
        *,
        workflow_id: str | None = None,
        workflow_stage_id: str | None = None,
        is_active: bool = True,
    ) -> AutomationTriggerTable:
        trigger = AutomationTriggerTable(
            automation_id=automation.id,
            workspace_id=automation.workspace_id,
            event_key=event_key,
            workflow_id=workflow_id,
            workflow_stage_id=workflow_stage_id,
            is_active=is_active,
        )
        self.session.add(trigger)
        self.session.flush()
        return trigger

    def create_run(self, **values: Any) -> AutomationRunTable:
        run = AutomationRunTable(**values)
        self.session.add(run)
        self.session.flush()
        return run

    def create_node_run(self, run_id: str, node_id: str, node_type: str) -> AutomationNodeRunTable:
        node_run = AutomationNodeRunTable(
            automation_run_id=run_id,
            node_id=node_id,
            node_type=node_type,
            attempts=0,
        )
        self.session.add(node_run)
        return node_run


__all__ = ["AutomationRepository"]
