"""Subject records and the repository protocol the engine reads them through.

The engine never owns invoices, workflow jobs or contacts; the host
application does.  These dataclasses are the read-only projection the
engine needs, and ``SubjectRepository`` is the seam the host implements
(typically over its own ORM session).

``InMemorySubjectRepository`` backs tests and local development.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class Contact:
    id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    phone_primary: str | None = None
    phone_secondary: str | None = None
    mobile: str | None = None

    @property
    def number(self) -> str | None:
        """First non-empty of mobile, phone, phone_primary, phone_secondary."""
        for candidate in (self.mobile, self.phone, self.phone_primary, self.phone_secondary):
            if candidate:
                return candidate
        return None


@dataclass(frozen=True)
class Invoice:
    id: str
    workspace_id: int | None = None
    document_number: str | None = None
    total_amount: Decimal | float | int | None = None
    issue_date: date | datetime | None = None
    due_date: date | datetime | None = None
    status: str | None = None
    contact_id: str | None = None


@dataclass(frozen=True)
class WorkflowStage:
    id: str
    name: str | None = None
    workflow_id: str | None = None


@dataclass(frozen=True)
class WorkflowJob:
    id: str
    workspace_id: int | None = None
    workflow_id: str | None = None
    workflow_stage_id: str | None = None
    contact_id: str | None = None
    invoice_id: str | None = None
    notes: str | None = None
    priority: str | None = None
    due_date: date | datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Actor:
    """User on whose behalf the run was triggered."""

    id: int
    name: str | None = None
    email: str | None = None


@runtime_checkable
class SubjectRepository(Protocol):
    """Read access to the host application's records."""

    def get_workflow_job(self, job_id: str) -> WorkflowJob | None: ...

    def get_invoice(self, invoice_id: str) -> Invoice | None: ...

    def get_stage(self, stage_id: str) -> WorkflowStage | None: ...

    def get_contact(self, contact_id: str) -> Contact | None: ...

    def get_user(self, user_id: int) -> Actor | None: ...


class InMemorySubjectRepository:
    """Dict-backed ``SubjectRepository``.

    Example:
        >>> repo = InMemorySubjectRepository()
        >>> repo.add_invoice(Invoice(id="1", workspace_id=7, document_number="B01"))
        >>> repo.get_invoice("1").document_number
        'B01'
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, WorkflowJob] = {}
        self._invoices: dict[str, Invoice] = {}
        self._stages: dict[str, WorkflowStage] = {}
        self._contacts: dict[str, Contact] = {}
        self._users: dict[int, Actor] = {}

    def add_workflow_job(self, job: WorkflowJob) -> None:
        with self._lock:
            self._jobs[str(job.id)] = job

    def add_invoice(self, invoice: Invoice) -> None:
        with self._lock:
            self._invoices[str(invoice.id)] = invoice

    def add_stage(self, stage: WorkflowStage) -> None:
        with self._lock:
            self._stages[str(stage.id)] = stage

    def add_contact(self, contact: Contact) -> None:
        with self._lock:
            self._contacts[str(contact.id)] = contact

    def add_user(self, user: Actor) -> None:
        with self._lock:
            self._users[user.id] = user

    def remove_invoice(self, invoice_id: str) -> None:
        with self._lock:
            self._invoices.pop(str(invoice_id), None)

    def remove_workflow_job(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(str(job_id), None)

    def get_workflow_job(self, job_id: str) -> WorkflowJob | None:
        return self._jobs.get(str(job_id))

    def get_invoice(self, invoice_id: str) -> Invoice | None:
        return self._invoices.get(str(invoice_id))

    def get_stage(self, stage_id: str) -> WorkflowStage | None:
        return self._stages.get(str(stage_id))

    def get_contact(self, contact_id: str) -> Contact | None:
        return self._contacts.get(str(contact_id))

    def get_user(self, user_id: int) -> Actor | None:
        return self._users.get(user_id)


__all__ = [
    "Contact",
    "Invoice",
    "WorkflowStage",
    "WorkflowJob",
    "Actor",
    "SubjectRepository",
    "InMemorySubjectRepository",
]
