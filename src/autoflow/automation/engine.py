"""Automation Engine - turns domain events into automation runs.

Manifesto:
    A domain event (a job moved stage, an invoice was created) is the only
    way a run starts, besides a manual ``start_run``.  The engine finds the
    tenant's active triggers, pins each automation's latest version, checks
    that the graph really contains a matching trigger node, creates the
    run and enqueues the entry nodes.  From then on the node executor owns
    the run.

ARCHITECTURE
────────────
::

    handle_event(event_key, payload)
      ├── "workflow.job.stage_changed" → handle_workflow_job_stage_changed
      ├── "invoice.created"            → handle_invoice_created
      ├── "invoice.updated"            → handle_invoice_updated
      └── anything else                → ignored (debug log)

    per active trigger (one transaction each):
      latest version → matching trigger nodes → none? no run
        → run(status=running) → entry nodes = successors of triggers
        → none? completed : pending_nodes = len(entry)
      COMMIT → enqueue(entry, context.to_template_data())

    start_run(automation_id, subject_type, subject_id, trigger_event_key)
      ─ manual trigger, same run creation path

Tags:
    autoflow, automation, engine, triggers, events

Doc-Types:
    api-reference, architecture
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from sqlalchemy.orm import Session

from autoflow.automation.context import AutomationContext, ContextBuilder
from autoflow.automation.definition import AutomationDefinition
from autoflow.automation.graph import entry_node_ids as resolve_entry_node_ids
from autoflow.automation.node_types import NodeCategory, NodeTypeCatalog, default_catalog
from autoflow.automation.repository import AutomationRepository
from autoflow.automation.status import RunStatus, validate_run_transition
from autoflow.core.errors import AutomationNotFoundError, InvalidEventPayloadError
from autoflow.core.orm.tables import AutomationRunTable, AutomationVersionTable
from autoflow.core.timestamps import utc_now
from autoflow.execution.queue import NodeQueue
from autoflow.framework.logging import get_logger

logger = get_logger(__name__)

EVENT_WORKFLOW_JOB_STAGE_CHANGED = "workflow.job.stage_changed"
EVENT_INVOICE_CREATED = "invoice.created"
EVENT_INVOICE_UPDATED = "invoice.updated"

STAGE_ENTERED_NODE = "workflow.stage_entered"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value != ""


class AutomationEngine:
    """Creates runs from domain events and manual triggers.

    Args:
        session_factory: Zero-argument callable returning a new ``Session``
        context_builder: Loads subjects and actors
        queue: Where entry nodes are enqueued
        catalog: Node type catalog used to recognise trigger nodes
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        context_builder: ContextBuilder,
        queue: NodeQueue,
        catalog: NodeTypeCatalog | None = None,
    ):
        self.session_factory = session_factory
        self.context_builder = context_builder
        self.queue = queue
        self.catalog = catalog or default_catalog()

    # -- events ----------------------------------------------------------------

    def handle_event(self, event_key: str, payload: Mapping[str, Any]) -> list[str]:
        """Dispatch a domain event.  Returns the ids of the runs created."""
        handlers = {
            EVENT_WORKFLOW_JOB_STAGE_CHANGED: self.handle_workflow_job_stage_changed,
            EVENT_INVOICE_CREATED: self.handle_invoice_created,
            EVENT_INVOICE_UPDATED: self.handle_invoice_updated,
        }
        handler = handlers.get(event_key)
        if handler is None:
            logger.debug("automation.event.ignored", event_key=event_key)
            return []
        return handler(payload)

    def handle_workflow_job_stage_changed(self, payload: Mapping[str, Any]) -> list[str]:
        """Payload: ``workflow_job_id``, ``to_stage_id``, optional
        ``from_stage_id``, ``workspace_id``, ``user_id``."""
        job_id = payload.get("workflow_job_id")
        to_stage_id = payload.get("to_stage_id")
        if not _non_empty_str(job_id) or not _non_empty_str(to_stage_id):
            raise InvalidEventPayloadError(
                f"Invalid payload for {EVENT_WORKFLOW_JOB_STAGE_CHANGED}"
            )

        from_stage_id = payload.get("from_stage_id")
        subject = self.context_builder.load_subject(
            "workflow_job",
            job_id,
            from_stage_id=from_stage_id if _non_empty_str(from_stage_id) else None,
            to_stage_id=to_stage_id,
        )
        context = AutomationContext(subject=subject, actor=self._actor(payload))
        return self._start_for_triggers(
            EVENT_WORKFLOW_JOB_STAGE_CHANGED,
            context,
            payload,
            workspace_id=self._workspace_id(payload, subject.workspace_id),
            workflow_stage_id=to_stage_id,
        )

    def handle_invoice_created(self, payload: Mapping[str, Any]) -> list[str]:
        """Payload: ``invoice_id``, optional ``workspace_id``, ``user_id``."""
        return self._handle_invoice_event(EVENT_INVOICE_CREATED, payload)

    def handle_invoice_updated(self, payload: Mapping[str, Any]) -> list[str]:
        """Payload: ``invoice_id``, optional ``workspace_id``, ``user_id``."""
        return self._handle_invoice_event(EVENT_INVOICE_UPDATED, payload)

    def _handle_invoice_event(self, event_key: str, payload: Mapping[str, Any]) -> list[str]:
        invoice_id = payload.get("invoice_id")
        if not (_is_int(invoice_id) or _non_empty_str(invoice_id)):
            raise InvalidEventPayloadError(f"Invalid payload for {event_key}")

        subject = self.context_builder.load_subject("invoice", str(invoice_id))
        context = AutomationContext(subject=subject, actor=self._actor(payload))
        return self._start_for_triggers(
            event_key,
            context,
            payload,
            workspace_id=self._workspace_id(payload, subject.workspace_id),
        )

    def _workspace_id(self, payload: Mapping[str, Any], fallback: Any) -> int | None:
        workspace_id = payload.get("workspace_id")
        if workspace_id is None:
            workspace_id = fallback
        return workspace_id if _is_int(workspace_id) else None

    def _actor(self, payload: Mapping[str, Any]):
        user_id = payload.get("user_id")
        if _is_int(user_id):
            return self.context_builder.repository.get_user(user_id)
        return None

    # -- trigger matching ------------------------------------------------------

    def matching_trigger_node_ids(
        self,
        event_key: str,
        definition: AutomationDefinition,
        payload: Mapping[str, Any],
    ) -> list[str]:
        """Ids of the graph's trigger nodes that listen to ``event_key``.

        ``workflow.stage_entered`` nodes additionally require
        ``config.stage_id`` to equal the payload's ``to_stage_id``.
        """
        trigger_types = {
            d.key for d in self.catalog.find_by_event_key(event_key)
            if d.category == NodeCategory.TRIGGER
        }
        matches = []
        for node in definition.nodes:
            if node.type not in trigger_types:
                continue
            if node.type == STAGE_ENTERED_NODE:
                to_stage_id = payload.get("to_stage_id")
                config = node.config if isinstance(node.config, Mapping) else {}
                stage_id = config.get("stage_id")
                if not to_stage_id or stage_id is None or str(stage_id) != str(to_stage_id):
                    continue
            matches.append(node.id)
        return matches

    def _start_for_triggers(
        self,
        event_key: str,
        context: AutomationContext,
        payload: Mapping[str, Any],
        *,
        workspace_id: int | None,
        workflow_stage_id: str | None = None,
    ) -> list[str]:
        if workspace_id is None:
            logger.info("automation.event.no_workspace", event_key=event_key)
            return []

        with self.session_factory() as session:
            triggers = AutomationRepository(session).active_triggers(
                workspace_id, event_key, workflow_stage_id
            )
            automation_ids = list(dict.fromkeys(t.automation_id for t in triggers))

        logger.info(
            "automation.event.received",
            event_key=event_key,
            workspace_id=workspace_id,
            triggers=len(automation_ids),
        )

        run_ids = []
        for automation_id in automation_ids:
            run_id = self._start_run_for_trigger(automation_id, event_key, context, payload, workspace_id)
            if run_id is not None:
                run_ids.append(run_id)
        return run_ids

    def _start_run_for_trigger(
        self,
        automation_id: str,
        event_key: str,
        context: AutomationContext,
        payload: Mapping[str, Any],
        workspace_id: int,
    ) -> str | None:
        with self.session_factory() as session, session.begin():
            repo = AutomationRepository(session)
            version = repo.latest_version(automation_id)
            if version is None:
                return None

            definition = AutomationDefinition.from_dict(version.definition)
            trigger_ids = self.matching_trigger_node_ids(event_key, definition, payload)
            if not trigger_ids:
                logger.debug("automation.trigger.no_match", automation_id=automation_id)
                return None

            entry = resolve_entry_node_ids(definition.edges, trigger_ids)
            run = self._create_run(repo, version, workspace_id, event_key, context, entry)
            run_id = run.id

        self._enqueue_entry_nodes(run_id, entry, context)
        return run_id

    # -- manual trigger --------------------------------------------------------

    def start_run(
        self,
        automation_id: str,
        subject_type: str,
        subject_id: str,
        trigger_event_key: str,
        entry_node_ids: Iterable[str] | None = None,
        actor_id: int | None = None,
    ) -> str:
        """Start a run directly, bypassing trigger lookup.

        Entry nodes default to the successors of every trigger node in the
        latest version's graph.

        Raises:
            AutomationNotFoundError: Unknown automation or no version
            UnsupportedSubjectError / SubjectNotFoundError: Bad subject
        """
        context = self.context_builder.build(subject_type, subject_id, actor_id=actor_id)

        with self.session_factory() as session, session.begin():
            repo = AutomationRepository(session)
            automation = repo.get_automation(automation_id)
            version = repo.latest_version(automation_id) if automation is not None else None
            if automation is None or version is None:
                raise AutomationNotFoundError(automation_id)

            definition = AutomationDefinition.from_dict(version.definition)
            if entry_node_ids is None:
                triggers = definition.trigger_nodes(self.catalog.trigger_types())
                entry = resolve_entry_node_ids(definition.edges, [t.id for t in triggers])
            else:
                entry = list(dict.fromkeys(entry_node_ids))

            run = self._create_run(
                repo, version, automation.workspace_id, trigger_event_key, context, entry
            )
            run_id = run.id

        self._enqueue_entry_nodes(run_id, entry, context)
        return run_id

    # -- helpers ---------------------------------------------------------------

    def _create_run(
        self,
        repo: AutomationRepository,
        version: AutomationVersionTable,
        workspace_id: int,
        event_key: str,
        context: AutomationContext,
        entry: list[str],
    ) -> AutomationRunTable:
        run = repo.create_run(
            automation_id=version.automation_id,
            automation_version_id=version.id,
            workspace_id=workspace_id,
            trigger_event_key=event_key,
            subject_type=context.subject_type,
            subject_id=context.subject.subject_id,
            status=RunStatus.RUNNING.value,
            pending_nodes=0,
            dispatched_nodes=list(entry),
            started_at=utc_now(),
        )
        if not entry:
            validate_run_transition(run.status, RunStatus.COMPLETED)
            run.status = RunStatus.COMPLETED.value
            run.finished_at = utc_now()
        else:
            run.pending_nodes = len(entry)

        logger.info(
            "automation.run.created",
            run_id=run.id,
            automation_id=version.automation_id,
            version=version.version,
            event_key=event_key,
            entry_nodes=entry,
            status=run.status,
        )
        return run

    def _enqueue_entry_nodes(self, run_id: str, entry: list[str], context: AutomationContext) -> None:
        if not entry:
            return
        input = context.to_template_data()
        del input["input"]
        for node_id in entry:
            self.queue.enqueue(run_id, node_id, input)


__all__ = [
    "AutomationEngine",
    "EVENT_WORKFLOW_JOB_STAGE_CHANGED",
    "EVENT_INVOICE_CREATED",
    "EVENT_INVOICE_UPDATED",
]
