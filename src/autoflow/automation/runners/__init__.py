"""Node runners: the per-node-type capabilities the executor dispatches to."""

from autoflow.automation.runners.base import NodeRunner
from autoflow.automation.runners.condition import ConditionConfig, ConditionNodeRunner
from autoflow.automation.runners.registry import NodeRunnerRegistry, default_registry
from autoflow.automation.runners.webhook import HttpWebhookRunner, WebhookConfig

__all__ = [
    "NodeRunner",
    "NodeRunnerRegistry",
    "default_registry",
    "ConditionConfig",
    "ConditionNodeRunner",
    "HttpWebhookRunner",
    "WebhookConfig",
]
