"""
CLI: ``autoflow runs`` — inspect automation runs.
"""

from __future__ import annotations

import typer

from autoflow.cli.utils import fail, make_session_factory, output_item, output_paged, print_table

app = typer.Typer(no_args_is_help=True)

_RUN_COLUMNS = ["id", "automation_id", "subject_type", "subject_id", "status", "pending_nodes", "created_at"]
_NODE_COLUMNS = ["node_id", "node_type", "status", "attempts", "error", "finished_at"]


@app.command("list")
def list_runs(
    automation: str | None = typer.Option(None, "--automation", "-a", help="Filter by automation id"),
    workspace: int | None = typer.Option(None, "--workspace", "-w", help="Filter by workspace id"),
    status: str | None = typer.Option(None, "--status", "-s", help="Filter by status"),
    limit: int = typer.Option(20, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List automation runs, newest first."""
    from autoflow.api.runs import RunSummaryResponse
    from autoflow.automation.repository import AutomationRepository
    from autoflow.automation.status import RunStatus

    if status is not None and status not in {s.value for s in RunStatus}:
        fail(f"Invalid status: {status}")

    with make_session_factory(database)() as session:
        rows, total = AutomationRepository(session).list_runs(
            automation_id=automation,
            workspace_id=workspace,
            status=status,
            limit=limit,
            offset=offset,
        )
        items = [RunSummaryResponse.model_validate(row) for row in rows]

    output_paged(
        items,
        total=total,
        limit=limit,
        offset=offset,
        as_json=json_out,
        title="Automation Runs",
        columns=_RUN_COLUMNS,
    )


@app.command("show")
def show_run(
    run_id: str = typer.Argument(..., help="Run ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show a run and the nodes it executed."""
    from autoflow.api.runs import NodeRunResponse, RunDetailResponse, RunSummaryResponse
    from autoflow.automation.repository import AutomationRepository

    with make_session_factory(database)() as session:
        repo = AutomationRepository(session)
        run = repo.get_run(run_id)
        if run is None:
            fail(f"Run {run_id} not found")
        summary = RunSummaryResponse.model_validate(run)
        node_runs = [NodeRunResponse.model_validate(n) for n in repo.list_node_runs(run_id)]

    if json_out:
        output_item(RunDetailResponse(**summary.model_dump(), node_runs=node_runs), as_json=True)
        return

    output_item(summary, title=f"Run {run_id}")
    if node_runs:
        print_table(node_runs, title="Node Runs", columns=_NODE_COLUMNS)
