"""
CLI utility helpers — output formatting and session management.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.orm import Session, sessionmaker

from autoflow.core.orm.session import automation_session_factory, engine_from_settings
from autoflow.core.settings import get_settings

console = Console()
err_console = Console(stderr=True)


# ── Session helper ───────────────────────────────────────────────────────


def make_session_factory(database: str | None = None) -> sessionmaker[Session]:
    """Session factory for ``--database`` or ``AUTOFLOW_DATABASE_URL``.

    A bare path is treated as a SQLite file.
    """
    settings = get_settings()
    if database:
        url = database if "://" in database else f"sqlite:///{database}"
        settings = settings.model_copy(update={"database_url": url})
    return automation_session_factory(engine_from_settings(settings))


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def fail(message: str) -> None:
    """Print an error and exit with status 1."""
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)


def output_item(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a single record as key-value pairs or JSON."""
    payload = _to_dict(data)
    if as_json:
        console.print_json(json.dumps(payload, default=str))
        return
    _print_dict(payload, title=title)


def output_paged(
    items: list[Any],
    *,
    total: int,
    limit: int,
    offset: int,
    as_json: bool = False,
    title: str = "",
    columns: list[str] | None = None,
) -> None:
    """Render a page of records with pagination info."""
    if as_json:
        payload = {
            "items": [_to_dict(d) for d in items],
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(items) < total,
        }
        console.print_json(json.dumps(payload, default=str))
        return

    if not items:
        console.print("[dim]No items.[/dim]")
        return

    print_table(items, title=title, columns=columns)
    console.print(f"\n[dim]Showing {len(items)} of {total} (offset {offset})[/dim]")


def print_table(items: list[Any], *, title: str = "", columns: list[str] | None = None) -> None:
    """Render a list of dataclasses/dicts/models as a Rich table."""
    rows = [_to_dict(item) for item in items]
    columns = columns or list(rows[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))
    console.print(table)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        if isinstance(v, dict | list):
            v = json.dumps(v, default=str)
        console.print(f"  [cyan]{k}[/cyan]: {v}")
