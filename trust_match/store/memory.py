"""In-memory application store with a per-application approval lock."""

import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from trust_match import ledger
from trust_match.exceptions import (
    ConcurrencyConflictError,
    InvalidEntityStateError,
    NotFoundError,
    ReferentialIntegrityError,
)
from trust_match.models.application import Application
from trust_match.models.approval import Approval, ApprovalResult
from trust_match.models.enums import ApplicationStatus, ApprovalStatus
from trust_match.models.preferences import TrustPreferences


@dataclass
class InMemoryStore:
    """In-memory store for applications, trust preferences and approvals.

    Approvals on one application are serialized by a lock owned by that
    application, so approvals on different applications never wait on each
    other. Stored ``Application`` objects are replaced, never mutated, which
    lets readers rank the pool without taking any lock.
    """

    lock_timeout: float = 5.0

    # Primary entities
    applications: dict[str, Application] = field(default_factory=dict)
    preferences: dict[str, TrustPreferences] = field(default_factory=dict)
    approvals: dict[str, Approval] = field(default_factory=dict)

    # Relationship indexes
    _application_approvals: dict[str, list[str]] = field(default_factory=dict)
    _trust_approvals: dict[str, list[str]] = field(default_factory=dict)

    # Per-application locks
    _locks: dict[str, threading.Lock] = field(default_factory=dict)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock)

    def add_trust(self, trust_id: str, preferences: TrustPreferences | None = None) -> None:
        """Register a trust; preferences default to "see everything"."""
        self.preferences[trust_id] = preferences or TrustPreferences()
        self._trust_approvals.setdefault(trust_id, [])

    def add_application(self, application: Application) -> None:
        """Add a submitted application to the store."""
        self.applications[application.application_id] = application
        self._application_approvals.setdefault(application.application_id, [])

    def update_preferences(self, trust_id: str, preferences: TrustPreferences) -> TrustPreferences:
        """Replace a trust's preferences."""
        if trust_id not in self.preferences:
            raise NotFoundError(f"Trust {trust_id} not found")
        self.preferences[trust_id] = preferences
        return preferences

    # Query methods
    def get_application(self, application_id: str) -> Application:
        """Get an application by id."""
        try:
            return self.applications[application_id]
        except KeyError:
            raise NotFoundError(f"Application {application_id} not found") from None

    def get_preferences(self, trust_id: str) -> TrustPreferences:
        """Get a trust's current preferences."""
        try:
            return self.preferences[trust_id]
        except KeyError:
            raise NotFoundError(f"Trust {trust_id} not found") from None

    def get_approval(self, approval_id: str) -> Approval:
        """Get an approval by id."""
        try:
            return self.approvals[approval_id]
        except KeyError:
            raise NotFoundError(f"Approval {approval_id} not found") from None

    def list_applications(self) -> list[Application]:
        """Snapshot of every application."""
        return list(self.applications.values())

    def get_application_approvals(self, application_id: str) -> list[Approval]:
        """Get all decisions recorded on an application."""
        approval_ids = self._application_approvals.get(application_id, [])
        return [self.approvals[aid] for aid in list(approval_ids)]

    def get_trust_decisions(self, trust_id: str) -> dict[str, Approval]:
        """Get a trust's decisions keyed by application id."""
        approval_ids = self._trust_approvals.get(trust_id, [])
        decisions = (self.approvals[aid] for aid in list(approval_ids))
        return {approval.application_id: approval for approval in decisions}

    # Ledger operations
    def commit_approval(
        self,
        application_id: str,
        trust_id: str,
        amount: Decimal,
        remarks: str | None = None,
        now: datetime | None = None,
    ) -> ApprovalResult:
        """Check the remaining balance and record an approval as one unit.

        Raises
        ------
        ValidationError
            If the amount is not positive or has more than two decimal places.
        NotFoundError
            If the application does not exist.
        ReferentialIntegrityError
            If the trust does not exist.
        InvalidEntityStateError
            If the application is closed or rejected, or the trust already
            decided on it.
        OverAllocationError
            If the amount exceeds the remaining balance.
        ConcurrencyConflictError
            If the application lock could not be acquired in time.
        """
        amount = ledger.parse_amount(amount)
        self.get_application(application_id)
        self._require_trust(trust_id)
        now = now or datetime.now()

        with self._locked(application_id):
            application = self.applications[application_id]
            self._require_no_decision(application_id, trust_id)

            approved = self._approved_total(application_id)
            new_total = ledger.check_allocation(
                application_id,
                application.status,
                application.total_amount_requested,
                approved,
                amount,
            )
            status = ledger.next_status(
                application.status, application.total_amount_requested, new_total
            )

            approval = Approval(
                approval_id=uuid.uuid4().hex,
                application_id=application_id,
                trust_id=trust_id,
                approved_amount=amount,
                status=ApprovalStatus.APPROVED,
                remarks=remarks,
                created_at=now,
            )
            updated = replace(
                application,
                total_amount_approved=new_total,
                status=status,
                updated_at=now,
                closed_at=now if status == ApplicationStatus.CLOSED else application.closed_at,
            )
            self._add_approval(approval)
            self.applications[application_id] = updated

        return ApprovalResult(approval=approval, application=updated)

    def record_rejection(
        self,
        application_id: str,
        trust_id: str,
        remarks: str | None = None,
        now: datetime | None = None,
    ) -> Approval:
        """Record a trust's rejection; the funding aggregate is untouched."""
        self.get_application(application_id)
        self._require_trust(trust_id)

        with self._locked(application_id):
            self._require_no_decision(application_id, trust_id)
            approval = Approval(
                approval_id=uuid.uuid4().hex,
                application_id=application_id,
                trust_id=trust_id,
                approved_amount=ledger.ZERO,
                status=ApprovalStatus.REJECTED,
                remarks=remarks,
                created_at=now or datetime.now(),
            )
            self._add_approval(approval)
        return approval

    def mark_paid(self, approval_id: str, trust_id: str, paid_at: datetime) -> Approval:
        """Record payment confirmation on an approval owned by ``trust_id``."""
        approval = self.get_approval(approval_id)
        if approval.trust_id != trust_id:
            raise NotFoundError(f"Approval {approval_id} not found for trust {trust_id}")
        if approval.status != ApprovalStatus.APPROVED:
            raise InvalidEntityStateError(f"Approval {approval_id} is {approval.status.value}")

        updated = replace(approval, paid_at=paid_at, updated_at=paid_at)
        self.approvals[approval_id] = updated
        return updated

    def reconcile_statuses(self, now: datetime | None = None) -> dict[str, int]:
        """Recompute aggregates from approvals and repair statuses.

        Returns
        -------
        dict[str, int]
            Number of applications moved to ``closed`` and to
            ``partially_approved``.
        """
        now = now or datetime.now()
        counts = {"closed": 0, "partially_approved": 0}

        for application_id in list(self.applications):
            with self._locked(application_id):
                application = self.applications[application_id]
                if application.status in ledger.TERMINAL_STATUSES:
                    continue
                approved = self._approved_total(application_id)
                status = ledger.next_status(
                    application.status, application.total_amount_requested, approved
                )
                if status == application.status and approved == application.total_amount_approved:
                    continue
                if status != application.status:
                    counts[status.value] = counts.get(status.value, 0) + 1
                self.applications[application_id] = replace(
                    application,
                    total_amount_approved=approved,
                    status=status,
                    updated_at=now,
                    closed_at=now if status == ApplicationStatus.CLOSED else application.closed_at,
                )
        return counts

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "applications": len(self.applications),
            "trusts": len(self.preferences),
            "approvals": len(self.approvals),
        }

    def _locked(self, application_id: str) -> "_ApplicationLock":
        with self._locks_guard:
            lock = self._locks.setdefault(application_id, threading.Lock())
        return _ApplicationLock(application_id, lock, self.lock_timeout)

    def _require_trust(self, trust_id: str) -> None:
        if trust_id not in self.preferences:
            raise ReferentialIntegrityError(f"Trust {trust_id} not found")

    def _require_no_decision(self, application_id: str, trust_id: str) -> None:
        for approval in self.get_application_approvals(application_id):
            if approval.trust_id == trust_id:
                raise InvalidEntityStateError(
                    f"Trust {trust_id} already {approval.status.value} application {application_id}"
                )

    def _approved_total(self, application_id: str) -> Decimal:
        return sum(
            (
                approval.approved_amount
                for approval in self.get_application_approvals(application_id)
                if approval.status == ApprovalStatus.APPROVED
            ),
            ledger.ZERO,
        )

    def _add_approval(self, approval: Approval) -> None:
        self.approvals[approval.approval_id] = approval
        self._application_approvals.setdefault(approval.application_id, []).append(
            approval.approval_id
        )
        self._trust_approvals.setdefault(approval.trust_id, []).append(approval.approval_id)


class _ApplicationLock:
    """Context manager acquiring one application's lock with a timeout."""

    __slots__ = ("_application_id", "_lock", "_timeout")

    def __init__(self, application_id: str, lock: threading.Lock, timeout: float) -> None:
        self._application_id = application_id
        self._lock = lock
        self._timeout = timeout

    def __enter__(self) -> None:
        if not self._lock.acquire(timeout=self._timeout):
            raise ConcurrencyConflictError(
                f"Timed out after {self._timeout}s waiting for application {self._application_id}"
            )

    def __exit__(self, *exc: object) -> None:
        self._lock.release()
