"""Tests for subject loading and template data projection."""

from __future__ import annotations

import pytest

from autoflow.automation.context import (
    AutomationContext,
    ContextBuilder,
    InvoiceSubject,
    WorkflowJobSubject,
)
from autoflow.automation.subjects import Contact, InMemorySubjectRepository, SubjectRepository
from autoflow.core.errors import SubjectNotFoundError, UnsupportedSubjectError


class TestContact:
    def test_number_prefers_mobile(self):
        assert Contact(id="1", phone="111", mobile="222").number == "222"

    def test_number_skips_empty_values(self):
        assert Contact(id="1", mobile="", phone=None, phone_primary="333").number == "333"

    def test_number_none(self):
        assert Contact(id="1").number is None


class TestContextBuilder:
    def test_repository_satisfies_protocol(self, subjects):
        assert isinstance(subjects, SubjectRepository)

    def test_invoice_subject(self, builder):
        context = builder.build("invoice", "42")
        assert isinstance(context.subject, InvoiceSubject)
        assert context.subject_type == "invoice"
        assert context.subject.subject_id == "42"
        assert context.subject.workspace_id == 1
        assert context.subject.contact.id == "c1"
        assert context.actor is None

    def test_workflow_job_defaults_to_current_stage(self, builder):
        context = builder.build("workflow_job", "job-1")
        subject = context.subject
        assert isinstance(subject, WorkflowJobSubject)
        assert subject.to_stage.id == "stage-won"
        assert subject.from_stage is None
        assert subject.invoice.id == "42"

    def test_workflow_job_stage_hints(self, builder):
        subject = builder.load_subject(
            "workflow_job", "job-1", from_stage_id="stage-new", to_stage_id="stage-won"
        )
        assert subject.from_stage.name == "New"
        assert subject.to_stage.name == "Won"

    def test_actor_loaded(self, builder):
        assert builder.build("invoice", "42", actor_id=5).actor.name == "Bruno"

    def test_unsupported_subject(self, builder):
        with pytest.raises(UnsupportedSubjectError, match=r"Unsupported subject type \[quote\]\."):
            builder.build("quote", "1")

    def test_missing_subject(self, builder):
        with pytest.raises(SubjectNotFoundError, match=r"Subject \[invoice:999\] not found\."):
            builder.build("invoice", "999")

    def test_register_custom_loader(self, builder, subjects):
        builder.register("invoice_alias", lambda repo, subject_id, **_: InvoiceSubject(repo.get_invoice(subject_id)))
        assert builder.supports("invoice_alias")
        assert builder.build("invoice_alias", "7").subject.invoice.document_number == "INV-0007"


class TestTemplateData:
    def test_invoice_projection(self, builder):
        data = builder.build("invoice", "42").to_template_data()
        assert set(data) == {"input", "job", "metadata", "contact", "invoice", "from_stage", "to_stage", "actor"}
        assert data["job"] is None
        assert data["invoice"]["number"] == "INV-0042"
        assert data["invoice"]["total_amount"] == "500.00"
        assert data["invoice"]["due_date"] == "2026-03-31"
        assert data["contact"]["number"] == "+5511999990000"

    def test_job_projection(self, builder):
        data = builder.build("workflow_job", "job-1", actor_id=5).to_template_data()
        assert data["job"]["priority"] == "high"
        assert data["job"]["started_at"] == "2026-03-02T09:30:00"
        assert data["metadata"] == {"source": "web"}
        assert data["to_stage"] == {"id": "stage-won", "name": "Won"}
        assert data["actor"] == {"id": 5, "name": "Bruno", "email": "bruno@example.com"}

    def test_input_overlaid_and_wins(self, invoice_context):
        data = invoice_context.to_template_data({"amount": 150, "invoice": "override"})
        assert data["input"] == {"amount": 150, "invoice": "override"}
        assert data["amount"] == 150
        assert data["invoice"] == "override"

    def test_input_key_holds_node_input(self, invoice_context):
        data = invoice_context.to_template_data({"input": {}, "amount": 150})
        assert data["input"] == {"input": {}, "amount": 150}

    def test_missing_contact_is_none(self):
        repo = InMemorySubjectRepository()
        from autoflow.automation.subjects import Invoice

        repo.add_invoice(Invoice(id="1", contact_id="gone"))
        data = ContextBuilder(repo).build("invoice", "1").to_template_data()
        assert data["contact"] is None

    def test_context_is_immutable(self, invoice_context):
        with pytest.raises(AttributeError):
            invoice_context.actor = None  # type: ignore[misc]
        assert isinstance(invoice_context, AutomationContext)
