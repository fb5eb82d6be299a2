"""
Root Typer application for the autoflow CLI.

Sub-command modules import the ORM and API models inside each command so
``autoflow --help`` stays fast.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="autoflow",
    help="autoflow — event-triggered automation engine.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("autoflow")
        except PackageNotFoundError:
            from autoflow import __version__ as v
        typer.echo(f"autoflow {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """autoflow CLI — inspect automation runs and manage the database."""


# ── Sub-command registration ─────────────────────────────────────────────

from autoflow.cli.db import app as db_app  # noqa: E402
from autoflow.cli.node_types import app as node_types_app  # noqa: E402
from autoflow.cli.runs import app as runs_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(runs_app, name="runs", help="Automation run inspection.")
app.add_typer(node_types_app, name="node-types", help="Node type catalog.")


if __name__ == "__main__":
    app()
