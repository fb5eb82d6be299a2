"""Tests for NodeRunnerRegistry and the NodeRunner contract."""

from __future__ import annotations

from typing import Any, ClassVar

import pytest
from pydantic import BaseModel

from autoflow.automation.result import NodeResult
from autoflow.automation.runners.base import NodeRunner
from autoflow.automation.runners.registry import NodeRunnerRegistry, default_registry
from autoflow.core.errors import InvalidNodeConfigError, RegistryFrozenError, RunnerNotFoundError


class _GreetConfig(BaseModel):
    name: str
    times: int = 1


class GreetRunner(NodeRunner):
    type: ClassVar[str] = "test.greet"
    config_model = _GreetConfig

    def run(self, context, config: _GreetConfig, input: dict[str, Any]) -> NodeResult:
        return NodeResult.ok({"greeting": " ".join([f"hi {config.name}"] * config.times)})


class UntypedRunner(NodeRunner):
    def run(self, context, config, input):
        return NodeResult.ok()


class TestNodeRunnerRegistry:
    def test_register_and_get(self):
        registry = NodeRunnerRegistry()
        runner = GreetRunner()
        registry.register(runner)
        assert registry.has("test.greet")
        assert "test.greet" in registry
        assert registry.get("test.greet") is runner
        assert registry.types() == ["test.greet"]
        assert len(registry) == 1

    def test_get_unknown(self):
        with pytest.raises(RunnerNotFoundError, match=r"Runner not found for node type \[nope\]\."):
            NodeRunnerRegistry().get("nope")

    def test_frozen_rejects_registration(self):
        registry = NodeRunnerRegistry([GreetRunner()])
        registry.freeze()
        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register(GreetRunner())

    def test_runner_without_type_rejected(self):
        with pytest.raises(ValueError):
            NodeRunnerRegistry().register(UntypedRunner())

    def test_default_registry(self):
        registry = default_registry(webhook_timeout=1.0)
        assert registry.types() == ["http.webhook", "logic.condition"]
        assert registry.frozen


class TestParseConfig:
    def test_valid_config(self):
        config = GreetRunner().parse_config({"name": "Ana", "times": "2"})
        assert config == _GreetConfig(name="Ana", times=2)

    def test_missing_field(self):
        with pytest.raises(InvalidNodeConfigError) as exc_info:
            GreetRunner().parse_config({})
        assert exc_info.value.details.startswith("name:")

    def test_non_mapping(self):
        with pytest.raises(InvalidNodeConfigError, match="config must be an object"):
            GreetRunner().parse_config(["name"])

    def test_no_model_returns_copy(self):
        raw = {"a": 1}

        class Plain(UntypedRunner):
            type = "test.plain"

        parsed = Plain().parse_config(raw)
        assert parsed == raw and parsed is not raw


class TestNodeResult:
    def test_error_message_fallbacks(self):
        assert NodeResult.fail("explicit").error_message() == "explicit"
        assert NodeResult.fail(None, {"error": "from output"}).error_message() == "from output"
        assert NodeResult.fail().error_message() == "Node failed"

    def test_ok(self):
        result = NodeResult.ok({"x": 1})
        assert result.success and result.output == {"x": 1} and result.error is None
