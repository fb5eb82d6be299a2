"""Tests for the ``autoflow`` CLI."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from autoflow.cli.app import app

runner = CliRunner()


@pytest.fixture
def finished_run(start_linear, queue, executor, run_row):
    run_id = start_linear("a", "b")
    queue.drain(executor)
    return run_row(run_id).automation_id, run_id


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.stdout.startswith("autoflow ")


class TestDbCommands:
    def test_init_creates_tables(self, tmp_path):
        path = tmp_path / "cli.db"
        result = runner.invoke(app, ["db", "init", "--database", str(path)])
        assert result.exit_code == 0, result.stdout
        assert "Created 5 tables" in result.stdout
        assert path.exists()

    def test_tables_json(self, database_url, finished_run):
        result = runner.invoke(app, ["db", "tables", "--database", database_url, "--json"])
        assert result.exit_code == 0, result.stdout
        counts = json.loads(result.stdout)
        assert counts["automation_runs"] == 1
        assert counts["automation_node_runs"] == 2


class TestRunsCommands:
    def test_list_json(self, database_url, finished_run):
        automation_id, run_id = finished_run
        result = runner.invoke(
            app, ["runs", "list", "--automation", automation_id, "--database", database_url, "--json"]
        )
        assert result.exit_code == 0, result.stdout
        payload = json.loads(result.stdout)
        assert payload["total"] == 1
        assert payload["has_more"] is False
        assert payload["items"][0]["id"] == run_id

    def test_list_table(self, database_url, finished_run):
        result = runner.invoke(app, ["runs", "list", "--database", database_url])
        assert result.exit_code == 0, result.stdout
        assert "Showing 1 of 1" in result.stdout

    def test_list_invalid_status(self, database_url):
        result = runner.invoke(app, ["runs", "list", "--status", "paused", "--database", database_url])
        assert result.exit_code == 1

    def test_show_json(self, database_url, finished_run):
        _, run_id = finished_run
        result = runner.invoke(app, ["runs", "show", run_id, "--database", database_url, "--json"])
        assert result.exit_code == 0, result.stdout
        payload = json.loads(result.stdout)
        assert payload["status"] == "completed"
        assert [n["node_id"] for n in payload["node_runs"]] == ["a", "b"]

    def test_show_missing(self, database_url, db_engine):
        result = runner.invoke(app, ["runs", "show", "nope", "--database", database_url])
        assert result.exit_code == 1


class TestNodeTypesCommands:
    def test_list_conditions_json(self):
        result = runner.invoke(app, ["node-types", "list", "--category", "condition", "--json"])
        assert result.exit_code == 0, result.stdout
        assert [d["key"] for d in json.loads(result.stdout)["items"]] == ["logic.condition"]

    def test_show_unknown(self):
        assert runner.invoke(app, ["node-types", "show", "telegram.send"]).exit_code == 1
