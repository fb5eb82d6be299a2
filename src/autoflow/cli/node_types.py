"""
CLI: ``autoflow node-types`` — browse the node type catalog.
"""

from __future__ import annotations

import typer

from autoflow.cli.utils import console, fail, output_item, print_table

app = typer.Typer(no_args_is_help=True)

_COLUMNS = ["key", "category", "label", "event_key"]


@app.command("list")
def list_node_types(
    category: str | None = typer.Option(None, "--category", "-c", help="trigger, action or condition"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List the node types automations can be built from."""
    from autoflow.automation.node_types import NodeCategory, default_catalog

    catalog = default_catalog()
    if category is None:
        definitions = catalog.all()
    else:
        try:
            definitions = catalog.by_category(NodeCategory(category))
        except ValueError:
            fail(f"Invalid category: {category}")

    if json_out:
        output_item({"items": [d.to_dict() for d in definitions]}, as_json=True)
        return
    if not definitions:
        console.print("[dim]No items.[/dim]")
        return
    print_table([d.to_dict() for d in definitions], title="Node Types", columns=_COLUMNS)


@app.command("show")
def show_node_type(
    key: str = typer.Argument(..., help="Node type key, e.g. logic.condition"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one node type with its default config."""
    from autoflow.automation.node_types import default_catalog

    definition = default_catalog().get(key)
    if definition is None:
        fail(f"Unknown node type: {key}")
    output_item(definition.to_dict(), as_json=json_out, title=key)
