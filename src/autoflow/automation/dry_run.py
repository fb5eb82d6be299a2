"""Dry run - walk an automation graph in-process without persisting anything.

Used by builders to "test" an automation against a real subject before
publishing it.  The walk is breadth-first from the graph's trigger nodes
and never revisits a node.

Per-node status:
    - ``success``  trigger nodes, and nodes that ran successfully (live mode)
    - ``dry_run``  a registered node that would execute (default mode)
    - ``error``    unregistered type, invalid config, failure or exception
    - ``skipped``  reserved for nodes the walk decided not to execute

In dry-run mode every outgoing edge is followed, so the report covers the
whole reachable graph.  With ``dry_run=False`` runners really execute
(webhooks are sent), condition nodes follow only their branch and the
output of other nodes accumulates into the input of the next.  The walk
does not continue past a node that errored.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from autoflow.automation.context import AutomationContext, ContextBuilder
from autoflow.automation.definition import AutomationDefinition
from autoflow.automation.graph import next_node_ids
from autoflow.automation.node_types import NodeTypeCatalog, default_catalog
from autoflow.automation.repository import AutomationRepository
from autoflow.automation.runners.registry import NodeRunnerRegistry
from autoflow.core.errors import AutomationNotFoundError, InvalidNodeConfigError
from autoflow.framework.logging import get_logger

logger = get_logger(__name__)


class SimulationStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    DRY_RUN = "dry_run"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class NodeSimulation:
    node_id: str
    type: str
    status: SimulationStatus
    output: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "type": self.type,
            "status": self.status.value,
            "output": self.output,
        }


@dataclass(frozen=True)
class SimulationReport:
    """Ordered per-node results of a simulated walk."""

    results: list[NodeSimulation] = field(default_factory=list)
    dry_run: bool = True

    @property
    def success(self) -> bool:
        return all(r.status != SimulationStatus.ERROR for r in self.results)

    def status_of(self, node_id: str) -> SimulationStatus | None:
        for result in self.results:
            if result.node_id == node_id:
                return result.status
        return None

    def visited(self) -> list[str]:
        return [r.node_id for r in self.results]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "dry_run": self.dry_run,
            "results": [r.to_dict() for r in self.results],
        }


def simulate_automation(
    definition: AutomationDefinition,
    context: AutomationContext,
    registry: NodeRunnerRegistry,
    *,
    dry_run: bool = True,
    catalog: NodeTypeCatalog | None = None,
    trigger_types: Iterable[str] | None = None,
) -> SimulationReport:
    """Walk ``definition`` from its trigger nodes against ``context``."""
    catalog = catalog or default_catalog()
    triggers = set(trigger_types) if trigger_types is not None else catalog.trigger_types()

    index = {}
    for node in definition.nodes:
        index.setdefault(node.id, node)

    queue = deque(n.id for n in definition.nodes if n.type in triggers)
    visited: set[str] = set()
    results: list[NodeSimulation] = []
    input: dict[str, Any] = {}

    while queue:
        node_id = queue.popleft()
        if node_id in visited:
            continue
        visited.add(node_id)

        node = index.get(node_id)
        if node is None:
            continue

        if node.type in triggers:
            results.append(NodeSimulation(node.id, node.type, SimulationStatus.SUCCESS, {"message": "Trigger fired"}))
            queue.extend(next_node_ids(definition.edges, node.id))
            continue

        if not registry.has(node.type):
            results.append(NodeSimulation(
                node.id, node.type, SimulationStatus.ERROR,
                {"error": f"Runner not found for node type [{node.type}]."},
            ))
            continue

        runner = registry.get(node.type)

        if dry_run:
            data = context.to_template_data(input)
            results.append(NodeSimulation(
                node.id, node.type, SimulationStatus.DRY_RUN,
                {
                    "message": "Node would execute",
                    "config": node.config,
                    "available_data": sorted(data),
                },
            ))
            queue.extend(next_node_ids(definition.edges, node.id))
            continue

        try:
            result = runner.execute(context, node.config, input)
        except InvalidNodeConfigError as e:
            results.append(NodeSimulation(node.id, node.type, SimulationStatus.ERROR, {"error": e.message}))
            continue
        except Exception as e:
            logger.warning("automation.simulation.node_raised", node_id=node.id, error=str(e))
            results.append(NodeSimulation(node.id, node.type, SimulationStatus.ERROR, {"error": str(e)}))
            continue

        if not result.success:
            results.append(NodeSimulation(
                node.id, node.type, SimulationStatus.ERROR,
                {**result.output, "error": result.error_message()},
            ))
            continue

        results.append(NodeSimulation(node.id, node.type, SimulationStatus.SUCCESS, dict(result.output)))
        if runner.branching:
            branch = str(result.output.get("branch", "true"))
            queue.extend(next_node_ids(definition.edges, node.id, branch))
        else:
            input = {**input, **result.output}
            queue.extend(next_node_ids(definition.edges, node.id))

    return SimulationReport(results=results, dry_run=dry_run)


def simulate_latest_version(
    session_factory: Callable[[], Session],
    context_builder: ContextBuilder,
    registry: NodeRunnerRegistry,
    automation_id: str,
    subject_type: str,
    subject_id: str,
    *,
    dry_run: bool = True,
    catalog: NodeTypeCatalog | None = None,
) -> SimulationReport:
    """Simulate the latest version of a stored automation against a subject.

    Raises:
        AutomationNotFoundError: No version exists for ``automation_id``
    """
    with session_factory() as session:
        version = AutomationRepository(session).latest_version(automation_id)
        if version is None:
            raise AutomationNotFoundError(automation_id)
        definition = AutomationDefinition.from_dict(version.definition)

    context = context_builder.build(subject_type, subject_id)
    return simulate_automation(definition, context, registry, dry_run=dry_run, catalog=catalog)


__all__ = [
    "SimulationStatus",
    "NodeSimulation",
    "SimulationReport",
    "simulate_automation",
    "simulate_latest_version",
]
