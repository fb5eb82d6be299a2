"""Tests for the ORM layer: engine factory, locking mode, tables, migration."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import inspect

from autoflow.automation.repository import AutomationRepository
from autoflow.core.orm import AutomationBase, AutomationSession, automation_session_factory, create_automation_engine

TABLES = {"automations", "automation_versions", "automation_triggers", "automation_runs", "automation_node_runs"}


class TestEngineFactory:
    def test_sqlite_pragmas(self, db_engine):
        with db_engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA journal_mode").scalar() == "wal"
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    def test_transactions_begin_immediate(self, db_engine):
        statements: list[str] = []

        from sqlalchemy import event

        @event.listens_for(db_engine, "before_cursor_execute")
        def _capture(conn, cursor, statement, *args):
            statements.append(statement)

        factory = automation_session_factory(db_engine)
        with factory() as session, session.begin():
            AutomationRepository(session).get_run("nope", lock=True)

        assert statements[0] == "BEGIN IMMEDIATE"

    def test_session_class(self, session_factory):
        with session_factory() as session:
            assert isinstance(session, AutomationSession)
            assert session.expire_on_commit is False


class TestTables:
    def test_all_tables_created(self, db_engine):
        assert TABLES <= set(inspect(db_engine).get_table_names())

    def test_versions_are_append_only(self, make_automation, session_factory, linear):
        automation_id = make_automation(linear("a"))
        with session_factory() as session, session.begin():
            repo = AutomationRepository(session)
            automation = repo.get_automation(automation_id)
            second = repo.publish_version(automation, linear("a", "b"))
            assert second.version == 2
            assert automation.published_version == 2
            assert len(automation.versions) == 2
            assert automation.versions[0].definition["nodes"][0]["id"] == "a"

    def test_list_runs_newest_first(self, make_automation, automation_engine, session_factory, linear):
        automation_id = make_automation(linear("a"))
        first = automation_engine.start_run(automation_id, "invoice", "42", "manual", entry_node_ids=[])
        second = automation_engine.start_run(automation_id, "invoice", "7", "manual", entry_node_ids=[])

        with session_factory() as session:
            rows, total = AutomationRepository(session).list_runs(automation_id=automation_id)
            assert total == 2
            assert [r.id for r in rows] == [second, first]
            rows, total = AutomationRepository(session).list_runs(status="failed")
            assert (rows, total) == ([], 0)


class TestMigration:
    def test_initial_migration_matches_models(self, tmp_path):
        from alembic import command
        from alembic.config import Config

        url = f"sqlite:///{tmp_path / 'migrated.db'}"
        root = Path(__file__).resolve().parents[2]
        config = Config()
        config.set_main_option("script_location", str(root / "alembic"))
        config.set_main_option("sqlalchemy.url", url)

        command.upgrade(config, "head")

        engine = create_automation_engine(url)
        try:
            inspector = inspect(engine)
            assert TABLES <= set(inspector.get_table_names())
            for name in TABLES:
                migrated = {c["name"] for c in inspector.get_columns(name)}
                modelled = {c.name for c in AutomationBase.metadata.tables[name].columns}
                assert migrated == modelled, name
        finally:
            engine.dispose()
