"""Node Runner - the capability every node type implements.

Manifesto:
    The graph document is user-authored, so a node's ``config`` arrives as
    an untyped mapping.  A runner declares a pydantic ``config_model`` and
    the executor validates the raw config into it *before* the node run is
    recorded.  ``run`` therefore only ever sees a typed config.

ARCHITECTURE
────────────
::

    NodeRunner (ABC)
      ├── type: ClassVar[str]            ─ e.g. "logic.condition"
      ├── branching: ClassVar[bool]      ─ output["branch"] filters edges
      ├── config_model: ClassVar[...]    ─ pydantic model or None
      ├── .parse_config(raw)             ─ → model (InvalidNodeConfigError)
      ├── .run(context, config, input)   ─ → NodeResult   (abstract)
      └── .execute(context, raw, input)  ─ parse_config + run

Tags:
    autoflow, automation, runner, node-runner, interface

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ValidationError

from autoflow.automation.result import NodeResult
from autoflow.core.errors import InvalidNodeConfigError

if TYPE_CHECKING:
    from autoflow.automation.context import AutomationContext


def format_validation_error(exc: ValidationError) -> str:
    """Compact ``field: message`` list from a pydantic error."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "config"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)


class NodeRunner(ABC):
    """Base class for node runners."""

    type: ClassVar[str] = ""
    branching: ClassVar[bool] = False
    config_model: ClassVar[type[BaseModel] | None] = None

    @property
    def node_type(self) -> str:
        return self.type

    def parse_config(self, config: Any) -> Any:
        """Validate a raw node config.

        Returns the ``config_model`` instance, or a plain dict copy when the
        runner declares no model.

        Raises:
            InvalidNodeConfigError: Config is not a mapping or fails the model
        """
        if not isinstance(config, Mapping):
            raise InvalidNodeConfigError(self.type, "config must be an object")
        if self.config_model is None:
            return dict(config)
        try:
            return self.config_model.model_validate(dict(config))
        except ValidationError as exc:
            raise InvalidNodeConfigError(self.type, format_validation_error(exc)) from exc

    @abstractmethod
    def run(self, context: AutomationContext, config: Any, input: dict[str, Any]) -> NodeResult:
        """Execute the node.

        Return ``NodeResult.fail`` for expected failures; raise for
        anything unexpected.
        """

    def execute(self, context: AutomationContext, config: Any, input: dict[str, Any]) -> NodeResult:
        return self.run(context, self.parse_config(config), input)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.type!r})"
