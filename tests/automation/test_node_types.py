"""Tests for the node type catalog."""

from __future__ import annotations

import pytest

from autoflow.automation.node_types import NodeCategory, NodeTypeDefinition, default_catalog


class TestDefaultCatalog:
    def test_trigger_types(self):
        assert default_catalog().trigger_types() == {
            "workflow.stage_entered",
            "invoice.created",
            "invoice.updated",
        }

    def test_event_keys(self):
        catalog = default_catalog()
        assert catalog.event_key_for_trigger("workflow.stage_entered") == "workflow.job.stage_changed"
        assert catalog.event_key_for_trigger("http.webhook") is None
        assert [d.key for d in catalog.find_by_event_key("invoice.updated")] == ["invoice.updated"]

    def test_palette_excludes_triggers(self):
        keys = [d.key for d in default_catalog().palette_items()]
        assert keys == ["http.webhook", "logic.condition"]

    def test_grouped_dict(self):
        grouped = default_catalog().to_grouped_dict()
        assert [d["key"] for d in grouped["conditions"]] == ["logic.condition"]
        assert grouped["actions"][0]["default_config"]["method"] == "POST"
        assert grouped["triggers"][0]["category"] == "trigger"

    def test_get_or_fail(self):
        with pytest.raises(KeyError):
            default_catalog().get_or_fail("telegram.send")


class TestCustomTypes:
    def test_register_replaces_by_key(self):
        catalog = default_catalog()
        catalog.register(NodeTypeDefinition(key="http.webhook", category=NodeCategory.ACTION, label="Webhook v2"))
        assert catalog.get("http.webhook").label == "Webhook v2"
        assert len(catalog.actions()) == 1
