"""
CLI: ``autoflow db`` — database management commands.
"""

from __future__ import annotations

import typer
from sqlalchemy import func, select

from autoflow.cli.utils import console, make_session_factory, output_item

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or SQLite path"),
) -> None:
    """Create the automation tables (for development; use alembic in production)."""
    from autoflow.core.orm import AutomationBase

    factory = make_session_factory(database)
    AutomationBase.metadata.create_all(factory.kw["bind"])
    console.print(f"[green]Created {len(AutomationBase.metadata.tables)} tables.[/green]")


@app.command()
def tables(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show row counts for all automation tables."""
    from autoflow.core.orm import AutomationBase

    factory = make_session_factory(database)
    counts = {}
    with factory() as session:
        for name, table in AutomationBase.metadata.tables.items():
            counts[name] = session.scalar(select(func.count()).select_from(table)) or 0
    output_item(counts, as_json=json_out, title="Table Counts")
