"""Node Runner Registry - node type string → runner lookup.

Manifesto:
    The executor resolves ``node["type"]`` to a runner at dispatch time.
    Registration happens once at startup; after that the registry is
    frozen so concurrent workers never observe a half-built mapping.

ARCHITECTURE
────────────
::

    NodeRunnerRegistry
      ├── .register(runner)  ─ store runner under runner.type
      ├── .has(type)         ─ existence check
      ├── .get(type)         ─ lookup (RunnerNotFoundError)
      ├── .types()           ─ registered type strings
      └── .freeze()          ─ reject further registration

    default_registry(http_client=None)  ─ condition + webhook, frozen

BEST PRACTICES
──────────────
- Build one registry per process at startup and pass it explicitly.
- Tests construct their own registry with fake runners.

Tags:
    autoflow, automation, registry, runner-registry, lookup

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from autoflow.automation.runners.base import NodeRunner
from autoflow.core.errors import RegistryFrozenError, RunnerNotFoundError
from autoflow.framework.logging import get_logger

if TYPE_CHECKING:
    import httpx

logger = get_logger(__name__)


class NodeRunnerRegistry:
    """Injectable runner registry.

    Example:
        >>> registry = NodeRunnerRegistry()
        >>> registry.register(ConditionNodeRunner())
        >>> registry.has("logic.condition")
        True
        >>> registry.freeze()
        >>> registry.register(HttpWebhookRunner())
        Traceback (most recent call last):
        ...
        autoflow.core.errors.RegistryFrozenError: ...
    """

    def __init__(self, runners: list[NodeRunner] | None = None):
        self._runners: dict[str, NodeRunner] = {}
        self._frozen = False
        self._lock = threading.Lock()
        for runner in runners or []:
            self.register(runner)

    def register(self, runner: NodeRunner) -> None:
        """Register a runner under its ``type``; a later registration replaces an earlier one."""
        if not runner.type:
            raise ValueError(f"{runner!r} has no node type")
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register runner for [{runner.type}]: registry is frozen."
                )
            self._runners[runner.type] = runner
        logger.debug("automation.registry.registered", node_type=runner.type)

    def has(self, node_type: str) -> bool:
        return node_type in self._runners

    def get(self, node_type: str) -> NodeRunner:
        """Get the runner for ``node_type``.

        Raises:
            RunnerNotFoundError: If no runner is registered
        """
        try:
            return self._runners[node_type]
        except KeyError:
            raise RunnerNotFoundError(node_type) from None

    def types(self) -> list[str]:
        return sorted(self._runners)

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._runners)

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._runners


def default_registry(
    http_client: httpx.Client | None = None,
    webhook_timeout: float | None = None,
) -> NodeRunnerRegistry:
    """Registry with the built-in runners, frozen.

    Args:
        http_client: Client used by the webhook runner (tests pass one
            backed by ``httpx.MockTransport``)
        webhook_timeout: Request timeout in seconds; defaults to
            ``AutomationSettings.webhook_timeout_seconds``
    """
    from autoflow.automation.runners.condition import ConditionNodeRunner
    from autoflow.automation.runners.webhook import HttpWebhookRunner

    if webhook_timeout is None:
        from autoflow.core.settings import get_settings

        webhook_timeout = get_settings().webhook_timeout_seconds

    registry = NodeRunnerRegistry()
    registry.register(ConditionNodeRunner())
    registry.register(HttpWebhookRunner(client=http_client, timeout=webhook_timeout))
    registry.freeze()
    return registry


__all__ = ["NodeRunnerRegistry", "default_registry"]
