"""Automation Definition - parsed, immutable graph document.

A published automation version stores its graph as a JSON document::

    {
        "nodes": [{"id": "t1", "type": "workflow.stage_entered", "config": {...}}, ...],
        "edges": [{"from": "t1", "to": "a1", "branch": "true"}, ...]
    }

The document is user-authored (visual builder or API), so parsing is
lenient: entries that are not mappings or lack an id are skipped.  The
builder emits the branch label as ``sourceHandle``; it is accepted as an
alias when ``branch`` is absent.

Node configs stay loosely typed here.  Each runner validates its own
config into a pydantic model right before use.

Tags:
    autoflow, automation, definition, graph-document

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class NodeDefinition:
    """One graph node: id, type string and opaque config."""

    id: str
    type: str
    config: Any = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "config": self.config}


@dataclass(frozen=True)
class EdgeDefinition:
    """Directed edge ``source → target`` with an optional branch label."""

    source: str
    target: str
    branch: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"from": self.source, "to": self.target}
        if self.branch is not None:
            result["branch"] = self.branch
        return result


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _parse_node(raw: Any) -> NodeDefinition | None:
    if not isinstance(raw, Mapping):
        return None
    node_id = _as_text(raw.get("id"))
    if not node_id:
        return None
    config = raw.get("config")
    if config is None:
        config = {}
    return NodeDefinition(id=node_id, type=_as_text(raw.get("type")), config=config)


def _parse_edge(raw: Any) -> EdgeDefinition | None:
    if not isinstance(raw, Mapping):
        return None
    branch = raw.get("branch")
    if branch is None:
        branch = raw.get("sourceHandle")
    return EdgeDefinition(
        source=_as_text(raw.get("from")),
        target=_as_text(raw.get("to")),
        branch=None if branch is None else str(branch),
    )


@dataclass(frozen=True)
class AutomationDefinition:
    """
    Parsed graph of one automation version.

    Attributes:
        nodes: Nodes in document order
        edges: Edges in document order (order drives successor order)
    """

    nodes: tuple[NodeDefinition, ...] = ()
    edges: tuple[EdgeDefinition, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> AutomationDefinition:
        """Parse a stored definition document."""
        data = data or {}
        raw_nodes = data.get("nodes") or []
        raw_edges = data.get("edges") or []
        nodes = tuple(n for n in (_parse_node(r) for r in raw_nodes) if n is not None)
        edges = tuple(e for e in (_parse_edge(r) for r in raw_edges) if e is not None)
        return cls(nodes=nodes, edges=edges)

    @classmethod
    def from_actions(
        cls,
        trigger_stage_id: str | int,
        actions: Iterable[Mapping[str, Any]],
    ) -> AutomationDefinition:
        """Build a linear graph ``t1 → a1 → a2 → ...`` from a list of actions.

        Mirrors the simple (non-visual) builder: a ``workflow.stage_entered``
        trigger followed by each action in order.
        """
        nodes = [
            NodeDefinition(
                id="t1",
                type="workflow.stage_entered",
                config={"stage_id": trigger_stage_id},
            )
        ]
        edges = []
        previous = "t1"
        for index, action in enumerate(actions, start=1):
            node_id = f"a{index}"
            nodes.append(
                NodeDefinition(
                    id=node_id,
                    type=_as_text(action.get("type")) or "http.webhook",
                    config=action.get("config") or {},
                )
            )
            edges.append(EdgeDefinition(source=previous, target=node_id))
            previous = node_id
        return cls(nodes=tuple(nodes), edges=tuple(edges))

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    def node(self, node_id: str) -> NodeDefinition | None:
        """Return the first node with ``node_id``, or None."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_type(self, node_type: str) -> list[NodeDefinition]:
        return [n for n in self.nodes if n.type == node_type]

    def trigger_nodes(self, trigger_types: Iterable[str]) -> list[NodeDefinition]:
        """All nodes whose type is one of ``trigger_types``."""
        wanted = set(trigger_types)
        return [n for n in self.nodes if n.type in wanted]


__all__ = ["NodeDefinition", "EdgeDefinition", "AutomationDefinition"]
