"""Tests for AutomationDefinition parsing and serialization."""

from __future__ import annotations

from autoflow.automation.definition import AutomationDefinition, EdgeDefinition, NodeDefinition


class TestFromDict:
    def test_parses_nodes_and_edges(self):
        definition = AutomationDefinition.from_dict({
            "nodes": [
                {"id": "t1", "type": "invoice.created", "config": {}},
                {"id": "c1", "type": "logic.condition", "config": {"field": "amount"}},
            ],
            "edges": [{"from": "t1", "to": "c1"}, {"from": "c1", "to": "x", "branch": "true"}],
        })
        assert [n.id for n in definition.nodes] == ["t1", "c1"]
        assert definition.edges[1] == EdgeDefinition("c1", "x", "true")

    def test_source_handle_alias(self):
        definition = AutomationDefinition.from_dict({
            "nodes": [],
            "edges": [{"from": "c1", "to": "x", "sourceHandle": "false"}],
        })
        assert definition.edges[0].branch == "false"

    def test_branch_wins_over_source_handle(self):
        definition = AutomationDefinition.from_dict({
            "edges": [{"from": "c1", "to": "x", "branch": "true", "sourceHandle": "false"}],
        })
        assert definition.edges[0].branch == "true"

    def test_skips_malformed_entries(self):
        definition = AutomationDefinition.from_dict({
            "nodes": ["junk", {"type": "no.id"}, {"id": "", "type": "x"}, {"id": "ok", "type": "x"}],
            "edges": [None, {"from": "ok", "to": "y"}],
        })
        assert [n.id for n in definition.nodes] == ["ok"]
        assert len(definition.edges) == 1

    def test_missing_config_becomes_empty_mapping(self):
        definition = AutomationDefinition.from_dict({"nodes": [{"id": "n", "type": "x"}]})
        assert definition.nodes[0].config == {}

    def test_non_mapping_config_is_kept(self):
        definition = AutomationDefinition.from_dict({"nodes": [{"id": "n", "type": "x", "config": [1]}]})
        assert definition.nodes[0].config == [1]

    def test_none_document(self):
        assert AutomationDefinition.from_dict(None) == AutomationDefinition()


class TestFromActions:
    def test_builds_linear_graph(self):
        definition = AutomationDefinition.from_actions(
            "stage-won",
            [
                {"type": "http.webhook", "config": {"url": "https://example.com"}},
                {"config": {"url": "https://example.org"}},
            ],
        )
        assert [n.id for n in definition.nodes] == ["t1", "a1", "a2"]
        assert definition.nodes[0].config == {"stage_id": "stage-won"}
        assert definition.nodes[2].type == "http.webhook"
        assert [(e.source, e.target) for e in definition.edges] == [("t1", "a1"), ("a1", "a2")]


class TestLookups:
    def test_node_and_trigger_nodes(self):
        definition = AutomationDefinition(
            nodes=(
                NodeDefinition("t1", "invoice.created"),
                NodeDefinition("a1", "http.webhook"),
                NodeDefinition("a2", "http.webhook"),
            ),
        )
        assert definition.node("a1").type == "http.webhook"
        assert definition.node("missing") is None
        assert [n.id for n in definition.nodes_of_type("http.webhook")] == ["a1", "a2"]
        assert [n.id for n in definition.trigger_nodes({"invoice.created"})] == ["t1"]

    def test_to_dict_uses_from_and_to(self):
        definition = AutomationDefinition(
            nodes=(NodeDefinition("a", "x", {"k": 1}),),
            edges=(EdgeDefinition("a", "b"), EdgeDefinition("b", "c", "true")),
        )
        assert definition.to_dict() == {
            "nodes": [{"id": "a", "type": "x", "config": {"k": 1}}],
            "edges": [{"from": "a", "to": "b"}, {"from": "b", "to": "c", "branch": "true"}],
        }
