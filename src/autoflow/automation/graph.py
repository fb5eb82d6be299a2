"""Graph resolver - successor lookup over an edge list.

Pure functions, no I/O.  Successor order follows edge order in the
definition and duplicates are dropped on first occurrence, so the same
graph always fans out the same way.
"""

from __future__ import annotations

from collections.abc import Iterable

from autoflow.automation.definition import EdgeDefinition


def next_node_ids(
    edges: Iterable[EdgeDefinition],
    from_node_id: str,
    branch: str | None = None,
) -> list[str]:
    """Return the ids of nodes reachable from ``from_node_id`` by one edge.

    Args:
        edges: Edges of the definition, in document order
        from_node_id: Node that just finished
        branch: When given, only edges labelled exactly with it are
            followed; unlabelled edges are excluded.  When None, every
            edge out of the node is followed regardless of label.
    """
    result: list[str] = []
    for edge in edges:
        if edge.source != from_node_id or not edge.target:
            continue
        if branch is not None and edge.branch != branch:
            continue
        if edge.target not in result:
            result.append(edge.target)
    return result


def entry_node_ids(edges: Iterable[EdgeDefinition], trigger_node_ids: Iterable[str]) -> list[str]:
    """Successors of a set of trigger nodes, in edge order, deduplicated.

    Branch labels are ignored: trigger nodes do not branch.
    """
    sources = set(trigger_node_ids)
    result: list[str] = []
    for edge in edges:
        if edge.source not in sources or not edge.target:
            continue
        if edge.target not in result:
            result.append(edge.target)
    return result


__all__ = ["next_node_ids", "entry_node_ids"]
