"""SQLAlchemy 2.0 ORM layer for autoflow.

Modules
-------
base        AutomationBase (declarative base) + TimestampMixin
session     Engine factory, AutomationSession, session factory
tables      Automation, version, trigger, run and node-run tables

Tags:
    autoflow, orm, sqlalchemy, declarative

Doc-Types:
    package-overview, module-index
"""

from __future__ import annotations

from autoflow.core.orm.base import AutomationBase, TimestampMixin
from autoflow.core.orm.session import (
    AutomationSession,
    automation_session_factory,
    create_automation_engine,
    engine_from_settings,
)
from autoflow.core.orm.tables import (
    AutomationNodeRunTable,
    AutomationRunTable,
    AutomationTable,
    AutomationTriggerTable,
    AutomationVersionTable,
)

__all__ = [
    "AutomationBase",
    "TimestampMixin",
    "create_automation_engine",
    "engine_from_settings",
    "AutomationSession",
    "automation_session_factory",
    "AutomationTable",
    "AutomationVersionTable",
    "AutomationTriggerTable",
    "AutomationRunTable",
    "AutomationNodeRunTable",
]
