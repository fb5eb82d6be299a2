"""Automation tables: automations, versions, triggers, runs, node runs.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "automations",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("published_version", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "automation_versions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "automation_id", sa.Text(),
            sa.ForeignKey("automations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("definition", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("automation_id", "version", name="uq_automation_version"),
    )
    op.create_table(
        "automation_triggers",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column(
            "automation_id", sa.Text(),
            sa.ForeignKey("automations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("event_key", sa.Text(), nullable=False),
        sa.Column("workflow_id", sa.Text(), nullable=True),
        sa.Column("workflow_stage_id", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("atr_ws_event_idx", "automation_triggers", ["workspace_id", "event_key"])
    op.create_index(
        "atr_ws_event_stage_idx", "automation_triggers",
        ["workspace_id", "event_key", "workflow_stage_id"],
    )
    op.create_table(
        "automation_runs",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column(
            "automation_id", sa.Text(),
            sa.ForeignKey("automations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "automation_version_id", sa.Integer(),
            sa.ForeignKey("automation_versions.id", ondelete="RESTRICT"), nullable=False,
        ),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("trigger_event_key", sa.Text(), nullable=False),
        sa.Column("subject_type", sa.Text(), nullable=False),
        sa.Column("subject_id", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("pending_nodes", sa.Integer(), nullable=False),
        sa.Column("dispatched_nodes", sa.JSON(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_automation_runs_ws_status", "automation_runs", ["workspace_id", "status"])
    op.create_index(
        "ix_automation_runs_automation_created", "automation_runs", ["automation_id", "created_at"]
    )
    op.create_table(
        "automation_node_runs",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column(
            "automation_run_id", sa.Text(),
            sa.ForeignKey("automation_runs.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("node_id", sa.Text(), nullable=False),
        sa.Column("node_type", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("input", sa.JSON(), nullable=True),
        sa.Column("output", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("automation_run_id", "node_id", name="uq_node_run_per_run"),
    )


def downgrade() -> None:
    op.drop_table("automation_node_runs")
    op.drop_index("ix_automation_runs_automation_created", table_name="automation_runs")
    op.drop_index("ix_automation_runs_ws_status", table_name="automation_runs")
    op.drop_table("automation_runs")
    op.drop_index("atr_ws_event_stage_idx", table_name="automation_triggers")
    op.drop_index("atr_ws_event_idx", table_name="automation_triggers")
    op.drop_table("automation_triggers")
    op.drop_table("automation_versions")
    op.drop_table("automations")
