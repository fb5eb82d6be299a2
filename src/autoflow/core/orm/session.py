"""SQLAlchemy engine factory and session factory.

Manifesto:
    The executor's correctness rests on one serialization point: the
    exclusive lock on the automation run row, held for the whole node
    transaction.  PostgreSQL gives us that with ``SELECT … FOR UPDATE``.
    SQLite has no row locks, so the engine factory makes every SQLite
    transaction start with ``BEGIN IMMEDIATE``: the first writer holds the
    database write lock until commit and concurrent executors wait on the
    busy timeout instead of interleaving.

This module provides:

* ``create_automation_engine``  -- Create a SA engine from a URL.
* ``AutomationSession``         -- A pre-configured ``Session`` subclass.
* ``automation_session_factory`` -- ``sessionmaker`` producing ``AutomationSession``.
* ``engine_from_settings``      -- Engine built from :class:`AutomationSettings`.

Tags:
    autoflow, orm, sqlalchemy, session, engine, locking

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

if TYPE_CHECKING:
    from autoflow.core.settings import AutomationSettings


def create_automation_engine(
    url: str = "sqlite:///data/autoflow.db",
    *,
    echo: bool = False,
    pool_size: int | None = None,
    busy_timeout: float = 30.0,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql+psycopg://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    pool_size:
        Connection pool size (ignored for SQLite).
    busy_timeout:
        Seconds a SQLite connection waits for the write lock.
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """

    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", busy_timeout)

        engine = _sa_create_engine(url, echo=echo, connect_args=connect_args, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            # Hand transaction control to SQLAlchemy so BEGIN can be issued below
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        return engine

    pool_kwargs: dict[str, Any] = {}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


def engine_from_settings(settings: AutomationSettings) -> Engine:
    """Build the engine described by *settings*."""
    return create_automation_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=None if settings.is_sqlite else settings.database_pool_size,
        busy_timeout=settings.sqlite_busy_timeout,
    )


class AutomationSession(Session):
    """Pre-configured session with ``expire_on_commit=False``.

    Prevents lazy-load surprises when run rows are read after the node
    transaction has committed (e.g. for successor dispatch).
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def automation_session_factory(engine: Engine) -> sessionmaker[AutomationSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``AutomationSession`` instances."""
    return sessionmaker(bind=engine, class_=AutomationSession)
