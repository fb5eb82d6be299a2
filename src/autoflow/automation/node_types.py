"""Node Type Catalog - descriptive metadata for every node type.

Where the runner registry answers "how do I execute ``http.webhook``?",
the catalog answers "what is ``http.webhook``?": its category, label,
default config, output schema and, for triggers, the domain event it
listens to.  The trigger engine uses ``find_by_event_key`` to recognise
trigger nodes inside a graph; builder UIs use ``to_grouped_dict`` to
render a palette.

Tags:
    autoflow, automation, node-types, catalog, metadata

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeCategory(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"


@dataclass(frozen=True)
class NodeTypeDefinition:
    """
    Metadata for one node type.

    Attributes:
        key: Unique node type string (``workflow.stage_entered``)
        category: Trigger, action or condition
        label: Display label
        description: One-line description
        default_config: Config a freshly added node starts with
        allow_multiple: Whether a graph may contain several of these
        show_in_palette: Whether builders offer it in the add-node palette
        event_key: Domain event a trigger listens to
        output_schema: ``dotted.path → {type, description}`` of the node's output
    """

    key: str
    category: NodeCategory
    label: str
    description: str = ""
    default_config: dict[str, Any] = field(default_factory=dict)
    allow_multiple: bool = True
    show_in_palette: bool = True
    event_key: str | None = None
    output_schema: dict[str, dict[str, str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "category": self.category.value,
            "label": self.label,
            "description": self.description,
            "default_config": dict(self.default_config),
            "allow_multiple": self.allow_multiple,
            "show_in_palette": self.show_in_palette,
            "event_key": self.event_key,
            "output_schema": dict(self.output_schema),
        }


class NodeTypeCatalog:
    """Registry of node type definitions, keyed by node type string."""

    def __init__(self) -> None:
        self._types: dict[str, NodeTypeDefinition] = {}

    def register(self, definition: NodeTypeDefinition) -> NodeTypeCatalog:
        self._types[definition.key] = definition
        return self

    def get(self, key: str) -> NodeTypeDefinition | None:
        return self._types.get(key)

    def get_or_fail(self, key: str) -> NodeTypeDefinition:
        try:
            return self._types[key]
        except KeyError:
            raise KeyError(f"Node type [{key}] is not registered.") from None

    def has(self, key: str) -> bool:
        return key in self._types

    def all(self) -> list[NodeTypeDefinition]:
        return list(self._types.values())

    def by_category(self, category: NodeCategory) -> list[NodeTypeDefinition]:
        return [d for d in self._types.values() if d.category == category]

    def triggers(self) -> list[NodeTypeDefinition]:
        return self.by_category(NodeCategory.TRIGGER)

    def actions(self) -> list[NodeTypeDefinition]:
        return self.by_category(NodeCategory.ACTION)

    def conditions(self) -> list[NodeTypeDefinition]:
        return self.by_category(NodeCategory.CONDITION)

    def trigger_types(self) -> set[str]:
        return {d.key for d in self.triggers()}

    def palette_items(self) -> list[NodeTypeDefinition]:
        """Non-trigger types offered in the add-node palette."""
        return [
            d for d in self._types.values()
            if d.show_in_palette and d.category != NodeCategory.TRIGGER
        ]

    def event_key_for_trigger(self, node_type: str) -> str | None:
        definition = self.get(node_type)
        if definition is None or definition.category != NodeCategory.TRIGGER:
            return None
        return definition.event_key

    def find_by_event_key(self, event_key: str) -> list[NodeTypeDefinition]:
        return [d for d in self._types.values() if d.event_key == event_key]

    def to_grouped_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "triggers": [d.to_dict() for d in self.triggers()],
            "actions": [d.to_dict() for d in self.actions()],
            "conditions": [d.to_dict() for d in self.conditions()],
        }


# =============================================================================
# BUILT-IN TYPES
# =============================================================================

_CONTACT_SCHEMA = {
    "contact": {"type": "object", "description": "Associated contact"},
    "contact.id": {"type": "string", "description": "Contact id"},
    "contact.name": {"type": "string", "description": "Contact name"},
    "contact.email": {"type": "string", "description": "Contact email"},
    "contact.phone": {"type": "string", "description": "Contact phone"},
    "contact.number": {"type": "string", "description": "First available phone number"},
}

_INVOICE_SCHEMA = {
    "invoice": {"type": "object", "description": "Invoice data"},
    "invoice.id": {"type": "string", "description": "Invoice id"},
    "invoice.document_number": {"type": "string", "description": "Document number"},
    "invoice.number": {"type": "string", "description": "Alias of document_number"},
    "invoice.total_amount": {"type": "number", "description": "Invoice total"},
    "invoice.status": {"type": "string", "description": "Invoice status"},
    "invoice.issue_date": {"type": "string", "description": "Issue date"},
    "invoice.due_date": {"type": "string", "description": "Due date"},
    **_CONTACT_SCHEMA,
}

BUILTIN_NODE_TYPES: tuple[NodeTypeDefinition, ...] = (
    NodeTypeDefinition(
        key="workflow.stage_entered",
        category=NodeCategory.TRIGGER,
        label="Stage entered",
        description="Runs when a workflow job enters a specific stage",
        default_config={"workflow_id": "", "stage_id": ""},
        allow_multiple=False,
        show_in_palette=False,
        event_key="workflow.job.stage_changed",
        output_schema={
            "job": {"type": "object", "description": "Workflow job data"},
            "job.id": {"type": "string", "description": "Job id"},
            "job.notes": {"type": "string", "description": "Job notes"},
            "job.priority": {"type": "string", "description": "Job priority"},
            "job.due_date": {"type": "string", "description": "Due date"},
            "metadata": {"type": "object", "description": "Job metadata"},
            "to_stage": {"type": "object", "description": "Stage entered"},
            "to_stage.id": {"type": "string", "description": "Stage id"},
            "to_stage.name": {"type": "string", "description": "Stage name"},
            "from_stage": {"type": "object", "description": "Previous stage, if any"},
            "from_stage.id": {"type": "string", "description": "Previous stage id"},
            "from_stage.name": {"type": "string", "description": "Previous stage name"},
            **_CONTACT_SCHEMA,
        },
    ),
    NodeTypeDefinition(
        key="invoice.created",
        category=NodeCategory.TRIGGER,
        label="Invoice created",
        description="Runs when a new invoice is created",
        allow_multiple=False,
        show_in_palette=False,
        event_key="invoice.created",
        output_schema=dict(_INVOICE_SCHEMA),
    ),
    NodeTypeDefinition(
        key="invoice.updated",
        category=NodeCategory.TRIGGER,
        label="Invoice updated",
        description="Runs when an invoice is updated",
        allow_multiple=False,
        show_in_palette=False,
        event_key="invoice.updated",
        output_schema=dict(_INVOICE_SCHEMA),
    ),
    NodeTypeDefinition(
        key="http.webhook",
        category=NodeCategory.ACTION,
        label="HTTP request",
        description="Sends an HTTP request to an external URL",
        default_config={"url": "", "method": "POST", "headers": {}, "body": {}},
        output_schema={
            "response": {"type": "object", "description": "Server response"},
            "response.status": {"type": "number", "description": "HTTP status code"},
            "response.body": {"type": "mixed", "description": "Response body"},
            "response.headers": {"type": "object", "description": "Response headers"},
        },
    ),
    NodeTypeDefinition(
        key="logic.condition",
        category=NodeCategory.CONDITION,
        label="Condition",
        description="Branches the flow on a condition",
        default_config={"field": "", "operator": "equals", "value": ""},
        output_schema={
            "condition_result": {"type": "boolean", "description": "Outcome of the condition"},
            "branch": {"type": "string", "description": "\"true\" or \"false\""},
            "evaluated": {"type": "object", "description": "Field, values and operator used"},
        },
    ),
)


def default_catalog() -> NodeTypeCatalog:
    catalog = NodeTypeCatalog()
    for definition in BUILTIN_NODE_TYPES:
        catalog.register(definition)
    return catalog


__all__ = [
    "NodeCategory",
    "NodeTypeDefinition",
    "NodeTypeCatalog",
    "BUILTIN_NODE_TYPES",
    "default_catalog",
]
