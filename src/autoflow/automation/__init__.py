"""
Automation engine - event-triggered, per-tenant graph workflows.

- ``definition`` / ``graph``  — parsed graph document and successor lookup
- ``context`` / ``subjects``  — subject sum type and template projection
- ``runners``                 — node runner contract, registry, built-ins
- ``executor``                — one node per transaction, idempotent
- ``engine``                  — domain events → runs
- ``dry_run``                 — in-process simulation
- ``node_types``              — node type catalog
"""

from autoflow.automation.context import (
    AutomationContext,
    ContextBuilder,
    InvoiceSubject,
    WorkflowJobSubject,
)
from autoflow.automation.definition import AutomationDefinition, EdgeDefinition, NodeDefinition
from autoflow.automation.dry_run import SimulationReport, simulate_automation
from autoflow.automation.engine import AutomationEngine
from autoflow.automation.executor import ExecutionOutcome, NodeExecution, NodeExecutor
from autoflow.automation.graph import entry_node_ids, next_node_ids
from autoflow.automation.node_types import NodeTypeCatalog, default_catalog
from autoflow.automation.result import NodeResult
from autoflow.automation.runners import NodeRunner, NodeRunnerRegistry, default_registry
from autoflow.automation.status import NodeRunStatus, RunStatus

__all__ = [
    "AutomationContext",
    "AutomationDefinition",
    "AutomationEngine",
    "ContextBuilder",
    "EdgeDefinition",
    "ExecutionOutcome",
    "InvoiceSubject",
    "NodeDefinition",
    "NodeExecution",
    "NodeExecutor",
    "NodeResult",
    "NodeRunStatus",
    "NodeRunner",
    "NodeRunnerRegistry",
    "NodeTypeCatalog",
    "RunStatus",
    "SimulationReport",
    "WorkflowJobSubject",
    "default_catalog",
    "default_registry",
    "entry_node_ids",
    "next_node_ids",
    "simulate_automation",
]
