"""Tests for structured logging: context propagation and configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from autoflow.framework.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_context,
    push_context,
    set_context,
)
from autoflow.framework.logging import config as logging_config
from autoflow.framework.logging.context import add_context_processor


@pytest.fixture
def json_logging(capsys):
    configure_logging(level="INFO", format="json", automation_debug=[], force=True)
    yield capsys
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
    logging_config._configured = False


def _records(captured: str) -> list[dict]:
    return [json.loads(line) for line in captured.splitlines() if line.startswith("{")]


class TestLogContext:
    def test_to_dict_skips_defaults(self):
        assert LogContext(run_id="r1").to_dict() == {"run_id": "r1"}
        assert LogContext(attempt=2).to_dict() == {"attempt": 2}

    def test_merge_ignores_none_and_unknown_keys(self):
        merged = LogContext(run_id="r1").merge(node_id="n1", run_id=None, colour="blue")
        assert (merged.run_id, merged.node_id) == ("r1", "n1")

    def test_set_bind_clear(self):
        set_context(run_id="r1")
        bind_context(node_id="n1", attempt=3)
        assert get_context().to_dict() == {"run_id": "r1", "node_id": "n1", "attempt": 3}
        clear_context()
        assert get_context().to_dict() == {}

    def test_push_restores(self):
        set_context(run_id="outer")
        token = push_context(run_id="inner", node_id="n1")
        assert get_context().run_id == "inner"
        token.restore()
        assert get_context().to_dict() == {"run_id": "outer"}

    def test_processor_does_not_override(self):
        set_context(run_id="r1", node_id="n1")
        event = add_context_processor(None, "info", {"event": "x", "node_id": "explicit"})
        assert event == {"event": "x", "node_id": "explicit", "run_id": "r1"}


class TestConfigureLogging:
    def test_json_output_carries_context(self, json_logging):
        log = structlog.get_logger("autoflow.tests")
        token = push_context(run_id="r1", automation_id="a1")
        try:
            log.info("automation.node.started", node_type="test.record")
        finally:
            token.restore()

        (record,) = _records(json_logging.readouterr().err)
        assert record["event"] == "automation.node.started"
        assert record["run_id"] == "r1"
        assert record["automation_id"] == "a1"
        assert record["level"] == "info"
        assert record["logger"] == "autoflow.tests"
        assert "timestamp" in record

    def test_level_filter(self, json_logging):
        log = structlog.get_logger("autoflow.tests")
        log.debug("hidden")
        log.warning("shown")
        assert [r["event"] for r in _records(json_logging.readouterr().err)] == ["shown"]

    def test_configure_once(self, json_logging):
        assert logging_config.is_configured()
        configure_logging(level="DEBUG")
        assert not logging_config.is_debug_enabled()


class TestAutomationDebug:
    def test_debug_only_for_listed_automation(self, capsys):
        configure_logging(level="INFO", format="json", automation_debug=["a1"], force=True)
        try:
            log = structlog.get_logger("autoflow.tests")
            token = push_context(automation_id="a1")
            log.debug("listed")
            token.restore()
            token = push_context(automation_id="a2")
            log.debug("other")
            token.restore()
            events = [r["event"] for r in _records(capsys.readouterr().err)]
        finally:
            structlog.reset_defaults()
            logging.getLogger().handlers.clear()
            logging_config._configured = False

        assert events == ["listed"]
