"""Automation table definitions — automations, versions, triggers, runs, node runs.

.. mermaid::

    erDiagram
        automations ||--o{ automation_versions : "publishes"
        automations ||--o{ automation_triggers : "listens"
        automations ||--o{ automation_runs : "executes"
        automation_versions ||--o{ automation_runs : "pins"
        automation_runs ||--o{ automation_node_runs : "records"

Tags:
    autoflow, orm, sqlalchemy, tables, automation

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autoflow.core.orm.base import AutomationBase, TimestampMixin
from autoflow.core.timestamps import new_id


class AutomationTable(TimestampMixin, AutomationBase):
    __tablename__ = "automations"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    workspace_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    published_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    versions: Mapped[list[AutomationVersionTable]] = relationship(
        "AutomationVersionTable", back_populates="automation",
        order_by="AutomationVersionTable.version",
    )


class AutomationVersionTable(TimestampMixin, AutomationBase):
    """Immutable, versioned graph document ``{nodes: [...], edges: [...]}``."""

    __tablename__ = "automation_versions"
    __table_args__ = (UniqueConstraint("automation_id", "version", name="uq_automation_version"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    automation_id: Mapped[str] = mapped_column(
        Text, ForeignKey("automations.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    definition: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_by: Mapped[int | None] = mapped_column(Integer)

    automation: Mapped[AutomationTable] = relationship("AutomationTable", back_populates="versions")


class AutomationTriggerTable(TimestampMixin, AutomationBase):
    __tablename__ = "automation_triggers"
    __table_args__ = (
        Index("atr_ws_event_idx", "workspace_id", "event_key"),
        Index("atr_ws_event_stage_idx", "workspace_id", "event_key", "workflow_stage_id"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    automation_id: Mapped[str] = mapped_column(
        Text, ForeignKey("automations.id", ondelete="CASCADE"), nullable=False
    )
    workspace_id: Mapped[int] = mapped_column(Integer, nullable=False)
    event_key: Mapped[str] = mapped_column(Text, nullable=False)
    workflow_id: Mapped[str | None] = mapped_column(Text)
    workflow_stage_id: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class AutomationRunTable(TimestampMixin, AutomationBase):
    """One execution of a pinned automation version against one subject.

    Mutated only by the node executor while it holds this row's lock.
    ``dispatched_nodes`` lists every node id ever enqueued for the run; a
    node is enqueued at most once, so joins consume exactly one pending slot.
    """

    __tablename__ = "automation_runs"
    __table_args__ = (
        Index("ix_automation_runs_ws_status", "workspace_id", "status"),
        Index("ix_automation_runs_automation_created", "automation_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    automation_id: Mapped[str] = mapped_column(
        Text, ForeignKey("automations.id", ondelete="CASCADE"), nullable=False
    )
    automation_version_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("automation_versions.id", ondelete="RESTRICT"), nullable=False
    )
    workspace_id: Mapped[int] = mapped_column(Integer, nullable=False)
    trigger_event_key: Mapped[str] = mapped_column(Text, nullable=False)
    subject_type: Mapped[str] = mapped_column(Text, nullable=False)
    subject_id: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, default="pending", nullable=False)
    pending_nodes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dispatched_nodes: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    started_at: Mapped[datetime.datetime | None] = mapped_column(DateTime)
    finished_at: Mapped[datetime.datetime | None] = mapped_column(DateTime)
    error: Mapped[str | None] = mapped_column(Text)

    version: Mapped[AutomationVersionTable] = relationship("AutomationVersionTable")
    node_runs: Mapped[list[AutomationNodeRunTable]] = relationship(
        "AutomationNodeRunTable", back_populates="run",
        order_by="AutomationNodeRunTable.started_at",
    )


class AutomationNodeRunTable(TimestampMixin, AutomationBase):
    """Execution record of one graph node within one run."""

    __tablename__ = "automation_node_runs"
    __table_args__ = (
        UniqueConstraint("automation_run_id", "node_id", name="uq_node_run_per_run"),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=new_id)
    automation_run_id: Mapped[str] = mapped_column(
        Text, ForeignKey("automation_runs.id", ondelete="CASCADE"), nullable=False
    )
    node_id: Mapped[str] = mapped_column(Text, nullable=False)
    node_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, default="running", nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    input: Mapped[dict | None] = mapped_column(JSON)
    output: Mapped[dict | None] = mapped_column(JSON)
    error: Mapped[str | None] = mapped_column(Text)
    started_at: Mapped[datetime.datetime | None] = mapped_column(DateTime)
    finished_at: Mapped[datetime.datetime | None] = mapped_column(DateTime)

    run: Mapped[AutomationRunTable] = relationship("AutomationRunTable", back_populates="node_runs")


__all__ = [
    "AutomationTable",
    "AutomationVersionTable",
    "AutomationTriggerTable",
    "AutomationRunTable",
    "AutomationNodeRunTable",
]
