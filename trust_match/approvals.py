"""Approval workflow: trust decisions on applications.

The workflow validates the request, hands the check-and-commit to the store
(which owns the per-application lock) and emits an audit event once the
decision is committed. It holds no shared state of its own.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from trust_match import ledger
from trust_match.exceptions import (
    ConcurrencyConflictError,
    OverAllocationError,
    SinkError,
    ValidationError,
)
from trust_match.logging import get_logger
from trust_match.models.approval import Approval, ApprovalResult
from trust_match.models.base import Event

logger = logging.getLogger(__name__)

EVENT_SOURCE = "trust-match"


class ApprovalWorkflow:
    """Approve, reject and confirm payment on applications.

    Parameters
    ----------
    store : InMemoryStore | PostgresStore
        Repository providing ``commit_approval``, ``record_rejection``,
        ``mark_paid`` and ``reconcile_statuses``.
    event_sink : Any | None
        Optional sink with a ``send(topic, record)`` method (console, JSON
        file or Kafka) that receives audit events.
    topic_prefix : str
        Prefix of the audit event topics.
    """

    def __init__(
        self,
        store: Any,
        event_sink: Any | None = None,
        topic_prefix: str = "dev.scholarships",
    ) -> None:
        self.store = store
        self.event_sink = event_sink
        self.topic_prefix = topic_prefix

    def approve(
        self,
        application_id: str,
        trust_id: str,
        approved_amount: Any,
        remarks: str | None = None,
    ) -> ApprovalResult:
        """Approve funding for an application.

        Parameters
        ----------
        application_id : str
            Application to fund.
        trust_id : str
            Approving trust.
        approved_amount : Any
            Positive decimal amount (``Decimal``, ``int`` or numeric string).
        remarks : str | None
            Optional note recorded with the approval.

        Returns
        -------
        ApprovalResult
            The persisted approval and the updated application.

        Raises
        ------
        ValidationError
            If the amount is not a positive decimal.
        OverAllocationError
            If the amount exceeds the remaining balance; nothing is written.
        ConcurrencyConflictError
            If the application lock could not be acquired; nothing is written.
        NotFoundError
            If the application or trust does not exist.
        """
        amount = ledger.parse_amount(approved_amount)
        remarks = _clean_remarks(remarks)
        log = get_logger(__name__, application_id=application_id, trust_id=trust_id)

        try:
            result = self.store.commit_approval(application_id, trust_id, amount, remarks)
        except OverAllocationError as e:
            log.warning("Refused approval of %s: remaining %s", amount, e.remaining_amount)
            raise
        except ConcurrencyConflictError:
            log.warning("Approval could not acquire the application lock")
            raise

        application = result.application
        log.info(
            "Approved %s (%s/%s, status=%s)",
            amount,
            application.total_amount_approved,
            application.total_amount_requested,
            application.status.value,
        )
        self._emit(
            "approvals",
            "approval.created",
            application_id,
            {
                "approval_id": result.approval.approval_id,
                "trust_id": trust_id,
                "approved_amount": amount,
                "total_amount_approved": application.total_amount_approved,
                "total_amount_requested": application.total_amount_requested,
                "application_status": application.status,
                "remarks": remarks,
            },
        )
        return result

    def reject(
        self,
        application_id: str,
        trust_id: str,
        remarks: str | None = None,
    ) -> Approval:
        """Record a rejection by one trust.

        The rejection is this trust's decision only: the funding aggregate
        and the application's status are left unchanged, so other trusts
        still see the application.
        """
        remarks = _clean_remarks(remarks) or "No reason provided"
        approval = self.store.record_rejection(application_id, trust_id, remarks)

        get_logger(__name__, application_id=application_id, trust_id=trust_id).info(
            "Rejected: %s", remarks
        )
        self._emit(
            "approvals",
            "approval.rejected",
            application_id,
            {"approval_id": approval.approval_id, "trust_id": trust_id, "remarks": remarks},
        )
        return approval

    def mark_paid(
        self,
        approval_id: str,
        trust_id: str,
        paid_at: datetime | None = None,
    ) -> Approval:
        """Record that the trust has disbursed an approved amount."""
        approval = self.store.mark_paid(approval_id, trust_id, paid_at or datetime.now())

        get_logger(
            __name__,
            application_id=approval.application_id,
            trust_id=trust_id,
            approval_id=approval_id,
        ).info("Marked paid at %s", approval.paid_at)
        self._emit(
            "payments",
            "approval.paid",
            approval.application_id,
            {
                "approval_id": approval_id,
                "trust_id": trust_id,
                "approved_amount": approval.approved_amount,
                "paid_at": approval.paid_at,
            },
        )
        return approval

    def reconcile_statuses(self) -> dict[str, int]:
        """Close fully funded applications and flag partially funded ones."""
        counts = self.store.reconcile_statuses()
        logger.info(
            "Status reconciliation: %d closed, %d partially approved",
            counts.get("closed", 0),
            counts.get("partially_approved", 0),
        )
        return counts

    def _emit(self, stream: str, event_type: str, subject: str, data: dict[str, Any]) -> None:
        """Publish an audit event; the decision is already committed."""
        if self.event_sink is None:
            return

        event = Event(
            event_id=uuid.uuid4().hex,
            event_type=event_type,
            event_time=datetime.now(),
            source=EVENT_SOURCE,
            subject=subject,
            data=data,
        )
        try:
            self.event_sink.send(f"{self.topic_prefix}.{stream}", event)
        except SinkError:
            logger.exception("Failed to publish %s for application %s", event_type, subject)


def _clean_remarks(remarks: str | None) -> str | None:
    if remarks is None:
        return None
    if not isinstance(remarks, str):
        raise ValidationError("remarks must be a string", field="remarks")
    return remarks.strip() or None
