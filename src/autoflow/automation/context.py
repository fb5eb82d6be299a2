"""Automation Context - the subject a run operates on, projected for templates.

Manifesto:
    Runners must not care whether a run was triggered by a workflow job
    moving stage or by an invoice being created.  The subject is a closed
    sum type (``WorkflowJobSubject | InvoiceSubject``) and every variant
    projects into the same flat template dictionary.

ARCHITECTURE
────────────
::

    ContextBuilder(repository)
      ├── .register(subject_type, loader)   ─ extend the loader map
      └── .build(subject_type, subject_id)  ─ → AutomationContext
                                                  │
    AutomationContext(subject, actor)             │
      └── .to_template_data(input)  ──────────────┘
            {input, job, metadata, contact, invoice,
             from_stage, to_stage, actor, **input}

Tags:
    autoflow, automation, context, subject, template-data

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar, Union

from autoflow.automation.subjects import (
    Actor,
    Contact,
    Invoice,
    SubjectRepository,
    WorkflowJob,
    WorkflowStage,
)
from autoflow.core.errors import SubjectNotFoundError, UnsupportedSubjectError
from autoflow.framework.logging import get_logger

logger = get_logger(__name__)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _amount(value: Any) -> Any:
    # Decimal is not JSON serializable; keep the exact text like a decimal cast
    if isinstance(value, Decimal):
        return str(value)
    return value


def _contact_data(contact: Contact | None) -> dict[str, Any] | None:
    if contact is None:
        return None
    return {
        "id": contact.id,
        "name": contact.name,
        "email": contact.email,
        "phone": contact.phone,
        "phone_primary": contact.phone_primary,
        "phone_secondary": contact.phone_secondary,
        "mobile": contact.mobile,
        "number": contact.number,
    }


def _invoice_data(invoice: Invoice | None) -> dict[str, Any] | None:
    if invoice is None:
        return None
    return {
        "id": invoice.id,
        "document_number": invoice.document_number,
        "number": invoice.document_number,
        "total_amount": _amount(invoice.total_amount),
        "issue_date": _iso(invoice.issue_date),
        "due_date": _iso(invoice.due_date),
        "status": invoice.status,
    }


def _stage_data(stage: WorkflowStage | None) -> dict[str, Any] | None:
    if stage is None:
        return None
    return {"id": stage.id, "name": stage.name}


def _job_data(job: WorkflowJob) -> dict[str, Any]:
    return {
        "id": job.id,
        "workflow_id": job.workflow_id,
        "workflow_stage_id": job.workflow_stage_id,
        "contact_id": job.contact_id,
        "invoice_id": job.invoice_id,
        "notes": job.notes,
        "priority": job.priority,
        "due_date": _iso(job.due_date),
        "started_at": _iso(job.started_at),
        "completed_at": _iso(job.completed_at),
    }


# =============================================================================
# SUBJECT VARIANTS
# =============================================================================


@dataclass(frozen=True)
class WorkflowJobSubject:
    """A workflow job, optionally with the stage move that triggered the run."""

    subject_type: ClassVar[str] = "workflow_job"

    job: WorkflowJob
    from_stage: WorkflowStage | None = None
    to_stage: WorkflowStage | None = None
    contact: Contact | None = None
    invoice: Invoice | None = None

    @property
    def subject_id(self) -> str:
        return str(self.job.id)

    @property
    def workspace_id(self) -> int | None:
        return self.job.workspace_id

    def template_parts(self) -> dict[str, Any]:
        return {
            "job": _job_data(self.job),
            "metadata": dict(self.job.metadata or {}),
            "contact": _contact_data(self.contact),
            "invoice": _invoice_data(self.invoice),
            "from_stage": _stage_data(self.from_stage),
            "to_stage": _stage_data(self.to_stage),
        }


@dataclass(frozen=True)
class InvoiceSubject:
    """An invoice and its contact."""

    subject_type: ClassVar[str] = "invoice"

    invoice: Invoice
    contact: Contact | None = None

    @property
    def subject_id(self) -> str:
        return str(self.invoice.id)

    @property
    def workspace_id(self) -> int | None:
        return self.invoice.workspace_id

    def template_parts(self) -> dict[str, Any]:
        return {
            "job": None,
            "metadata": {},
            "contact": _contact_data(self.contact),
            "invoice": _invoice_data(self.invoice),
            "from_stage": None,
            "to_stage": None,
        }


Subject = Union[WorkflowJobSubject, InvoiceSubject]


@dataclass(frozen=True)
class AutomationContext:
    """Read-only view of the run's subject and actor handed to every runner."""

    subject: Subject
    actor: Actor | None = None

    @property
    def subject_type(self) -> str:
        return self.subject.subject_type

    def to_template_data(self, input: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Flat dictionary that templates and condition paths resolve against.

        ``input`` is kept under the ``input`` key and also overlaid at the top
        level, so ``{{ amount }}`` and ``{{ input.amount }}`` both work.  On a
        key clash the input wins, except for ``input`` itself, which always
        holds the node input.
        """
        input = dict(input or {})
        data: dict[str, Any] = dict(self.subject.template_parts())
        data["actor"] = (
            {"id": self.actor.id, "name": self.actor.name, "email": self.actor.email}
            if self.actor is not None
            else None
        )
        data.update(input)
        data["input"] = input
        return data


# =============================================================================
# CONTEXT BUILDER
# =============================================================================

SubjectLoader = Callable[..., Subject]


def load_workflow_job(
    repository: SubjectRepository,
    subject_id: str,
    *,
    from_stage_id: str | None = None,
    to_stage_id: str | None = None,
) -> WorkflowJobSubject:
    """Load a job with its contact, invoice and stages.

    Without an explicit ``to_stage_id`` the job's current stage is used.
    """
    job = repository.get_workflow_job(subject_id)
    if job is None:
        raise SubjectNotFoundError(WorkflowJobSubject.subject_type, str(subject_id))

    stage_id = to_stage_id or job.workflow_stage_id
    return WorkflowJobSubject(
        job=job,
        from_stage=repository.get_stage(from_stage_id) if from_stage_id else None,
        to_stage=repository.get_stage(stage_id) if stage_id else None,
        contact=repository.get_contact(job.contact_id) if job.contact_id else None,
        invoice=repository.get_invoice(job.invoice_id) if job.invoice_id else None,
    )


def load_invoice(repository: SubjectRepository, subject_id: str, **_: Any) -> InvoiceSubject:
    invoice = repository.get_invoice(subject_id)
    if invoice is None:
        raise SubjectNotFoundError(InvoiceSubject.subject_type, str(subject_id))
    contact = repository.get_contact(invoice.contact_id) if invoice.contact_id else None
    return InvoiceSubject(invoice=invoice, contact=contact)


class ContextBuilder:
    """Builds an ``AutomationContext`` for a run's subject.

    Example:
        >>> builder = ContextBuilder(InMemorySubjectRepository())
        >>> builder.build("quote", "1")
        Traceback (most recent call last):
        ...
        autoflow.core.errors.UnsupportedSubjectError: Unsupported subject type [quote].
    """

    def __init__(self, repository: SubjectRepository):
        self.repository = repository
        self._loaders: dict[str, SubjectLoader] = {
            WorkflowJobSubject.subject_type: load_workflow_job,
            InvoiceSubject.subject_type: load_invoice,
        }

    def register(self, subject_type: str, loader: SubjectLoader) -> None:
        self._loaders[subject_type] = loader

    def supports(self, subject_type: str) -> bool:
        return subject_type in self._loaders

    def load_subject(self, subject_type: str, subject_id: str, **hints: Any) -> Subject:
        loader = self._loaders.get(subject_type)
        if loader is None:
            raise UnsupportedSubjectError(subject_type)
        return loader(self.repository, str(subject_id), **hints)

    def build(
        self,
        subject_type: str,
        subject_id: str,
        *,
        actor_id: int | None = None,
        **hints: Any,
    ) -> AutomationContext:
        """Load the subject and (optionally) the acting user.

        Raises:
            UnsupportedSubjectError: No loader for ``subject_type``
            SubjectNotFoundError: The subject record does not exist
        """
        subject = self.load_subject(subject_type, subject_id, **hints)
        actor = self.repository.get_user(actor_id) if actor_id is not None else None
        logger.debug(
            "automation.context.built",
            subject_type=subject_type,
            subject_id=str(subject_id),
            actor_id=actor_id,
        )
        return AutomationContext(subject=subject, actor=actor)


__all__ = [
    "WorkflowJobSubject",
    "InvoiceSubject",
    "Subject",
    "AutomationContext",
    "ContextBuilder",
    "load_workflow_job",
    "load_invoice",
]
