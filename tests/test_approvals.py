"""Tests for ApprovalWorkflow."""

import logging
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from trust_match.approvals import ApprovalWorkflow
from trust_match.exceptions import (
    InvalidEntityStateError,
    OverAllocationError,
    SinkError,
    ValidationError,
)
from trust_match.models import ApplicationStatus, ApprovalStatus, Event
from trust_match.store.memory import InMemoryStore

APP_ID = "app-test-001"
TRUST_A = "trust-test-001"
TRUST_B = "trust-test-002"


@pytest.fixture
def sink() -> MagicMock:
    """Mock event sink."""
    return MagicMock()


@pytest.fixture
def workflow(store: InMemoryStore, sink: MagicMock) -> ApprovalWorkflow:
    """Workflow over the sample store with a mock sink."""
    return ApprovalWorkflow(store, event_sink=sink)


class TestApprove:
    """Tests for ApprovalWorkflow.approve."""

    def test_approve_emits_event(self, workflow: ApprovalWorkflow, sink: MagicMock) -> None:
        result = workflow.approve(APP_ID, TRUST_A, "6000", remarks="  Semester one  ")

        assert result.application.status == ApplicationStatus.PARTIALLY_APPROVED
        assert result.approval.remarks == "Semester one"
        sink.send.assert_called_once()
        topic, event = sink.send.call_args[0]
        assert topic == "dev.scholarships.approvals"
        assert isinstance(event, Event)
        assert event.event_type == "approval.created"
        assert event.subject == APP_ID
        assert event.data["approved_amount"] == Decimal("6000")
        assert event.data["total_amount_approved"] == Decimal("6000")
        assert event.data["application_status"] == ApplicationStatus.PARTIALLY_APPROVED

    def test_partial_then_over_allocation_then_close(self, workflow: ApprovalWorkflow) -> None:
        workflow.approve(APP_ID, TRUST_A, Decimal("6000"))

        with pytest.raises(OverAllocationError) as exc_info:
            workflow.approve(APP_ID, TRUST_B, Decimal("5000"))
        assert exc_info.value.remaining_amount == Decimal("4000")

        result = workflow.approve(APP_ID, TRUST_B, Decimal("4000"))
        assert result.closed

    def test_sub_cent_amount_refused(
        self, workflow: ApprovalWorkflow, store: InMemoryStore, sink: MagicMock
    ) -> None:
        with pytest.raises(ValidationError) as exc_info:
            workflow.approve(APP_ID, TRUST_A, "0.004")

        assert exc_info.value.field == "approved_amount"
        assert store.get_application_approvals(APP_ID) == []
        # The trust keeps its one decision
        assert workflow.approve(APP_ID, TRUST_A, "0.01").approval.approved_amount == Decimal("0.01")
        sink.send.assert_called_once()

    def test_over_allocation_logged_and_no_event(
        self,
        workflow: ApprovalWorkflow,
        sink: MagicMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="trust_match.approvals"):
            with pytest.raises(OverAllocationError):
                workflow.approve(APP_ID, TRUST_A, "10001")

        assert "Refused approval" in caplog.text
        assert caplog.records[-1].application_id == APP_ID
        assert caplog.records[-1].trust_id == TRUST_A
        sink.send.assert_not_called()

    @pytest.mark.parametrize("amount", [0, "-100", 12.5, "ten", None])
    def test_invalid_amount(self, workflow: ApprovalWorkflow, store: InMemoryStore, amount: object) -> None:
        with pytest.raises(ValidationError):
            workflow.approve(APP_ID, TRUST_A, amount)

        assert store.get_application_approvals(APP_ID) == []

    def test_non_string_remarks(self, workflow: ApprovalWorkflow) -> None:
        with pytest.raises(ValidationError) as exc_info:
            workflow.approve(APP_ID, TRUST_A, "100", remarks=42)  # type: ignore[arg-type]

        assert exc_info.value.field == "remarks"

    def test_sink_failure_does_not_undo_commit(
        self,
        workflow: ApprovalWorkflow,
        sink: MagicMock,
        store: InMemoryStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        sink.send.side_effect = SinkError("broker down")

        with caplog.at_level(logging.ERROR, logger="trust_match.approvals"):
            result = workflow.approve(APP_ID, TRUST_A, "1000")

        assert store.get_approval(result.approval.approval_id) == result.approval
        assert "Failed to publish approval.created" in caplog.text

    def test_without_sink(self, store: InMemoryStore) -> None:
        result = ApprovalWorkflow(store).approve(APP_ID, TRUST_A, "1000")

        assert result.application.total_amount_approved == Decimal("1000")

    def test_custom_topic_prefix(self, store: InMemoryStore, sink: MagicMock) -> None:
        ApprovalWorkflow(store, sink, topic_prefix="prod.scholarships").approve(APP_ID, TRUST_A, "1")

        assert sink.send.call_args[0][0] == "prod.scholarships.approvals"


class TestReject:
    """Tests for ApprovalWorkflow.reject."""

    def test_reject(self, workflow: ApprovalWorkflow, sink: MagicMock, store: InMemoryStore) -> None:
        approval = workflow.reject(APP_ID, TRUST_A, "Outside focus area")

        assert approval.status == ApprovalStatus.REJECTED
        assert store.get_application(APP_ID).status == ApplicationStatus.SUBMITTED
        topic, event = sink.send.call_args[0]
        assert topic == "dev.scholarships.approvals"
        assert event.event_type == "approval.rejected"

    def test_default_remarks(self, workflow: ApprovalWorkflow) -> None:
        approval = workflow.reject(APP_ID, TRUST_A, "   ")

        assert approval.remarks == "No reason provided"

    def test_reject_twice(self, workflow: ApprovalWorkflow) -> None:
        workflow.reject(APP_ID, TRUST_A)

        with pytest.raises(InvalidEntityStateError):
            workflow.reject(APP_ID, TRUST_A)


class TestMarkPaid:
    """Tests for ApprovalWorkflow.mark_paid."""

    def test_mark_paid(self, workflow: ApprovalWorkflow, sink: MagicMock) -> None:
        result = workflow.approve(APP_ID, TRUST_A, "1000")
        paid_at = datetime(2024, 7, 1, 9, 30)

        approval = workflow.mark_paid(result.approval.approval_id, TRUST_A, paid_at)

        assert approval.paid_at == paid_at
        topic, event = sink.send.call_args[0]
        assert topic == "dev.scholarships.payments"
        assert event.event_type == "approval.paid"
        assert event.data["paid_at"] == paid_at

    def test_mark_paid_defaults_to_now(self, workflow: ApprovalWorkflow) -> None:
        result = workflow.approve(APP_ID, TRUST_A, "1000")

        approval = workflow.mark_paid(result.approval.approval_id, TRUST_A)

        assert approval.paid_at is not None


class TestReconcile:
    """Tests for ApprovalWorkflow.reconcile_statuses."""

    def test_delegates_to_store(self, workflow: ApprovalWorkflow) -> None:
        workflow.approve(APP_ID, TRUST_A, "1000")

        assert workflow.reconcile_statuses() == {"closed": 0, "partially_approved": 0}
