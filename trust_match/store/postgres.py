"""PostgreSQL application store.

Every public method runs in its own connection and transaction, so one store
instance can be shared by concurrent request handlers. ``commit_approval``
locks the application row with ``SELECT ... FOR UPDATE`` before reading the
approved total; the lock wait is bounded by ``lock_timeout`` and a timeout
surfaces as :class:`~trust_match.exceptions.ConcurrencyConflictError`, as do
statement timeouts, deadlocks and serialization failures.
"""

import json
import logging
import uuid
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterator

from trust_match import ledger
from trust_match.config import PostgresConfig
from trust_match.exceptions import (
    ConcurrencyConflictError,
    InvalidEntityStateError,
    NotFoundError,
    ReferentialIntegrityError,
)
from trust_match.models.application import Application, EducationHistory, FamilyMember
from trust_match.models.approval import Approval, ApprovalResult
from trust_match.models.enums import ApplicationStatus, ApprovalStatus
from trust_match.models.preferences import TrustPreferences

logger = logging.getLogger(__name__)


class PostgresStore:
    """Store applications, preferences and approvals in PostgreSQL."""

    DDL = """
        CREATE TABLE IF NOT EXISTS trusts (
            trust_id TEXT PRIMARY KEY,
            name TEXT NOT NULL DEFAULT '',
            preferences JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ
        );

        CREATE TABLE IF NOT EXISTS applications (
            application_id TEXT PRIMARY KEY,
            student_id TEXT NOT NULL,
            student_name TEXT NOT NULL,
            gender TEXT NOT NULL,
            course_name TEXT NOT NULL,
            city TEXT NOT NULL,
            academic_year TEXT NOT NULL DEFAULT '',
            total_amount_requested NUMERIC(15, 2) NOT NULL CHECK (total_amount_requested > 0),
            total_amount_approved NUMERIC(15, 2) NOT NULL DEFAULT 0,
            status TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ,
            closed_at TIMESTAMPTZ,
            CHECK (total_amount_approved >= 0 AND total_amount_approved <= total_amount_requested)
        );

        CREATE TABLE IF NOT EXISTS family_members (
            member_id TEXT PRIMARY KEY,
            application_id TEXT NOT NULL REFERENCES applications(application_id),
            name TEXT NOT NULL DEFAULT '',
            relation TEXT NOT NULL DEFAULT '',
            monthly_income NUMERIC(15, 2) NOT NULL CHECK (monthly_income >= 0)
        );

        CREATE TABLE IF NOT EXISTS education_history (
            education_id TEXT PRIMARY KEY,
            application_id TEXT NOT NULL REFERENCES applications(application_id),
            qualification TEXT NOT NULL DEFAULT '',
            institution TEXT NOT NULL DEFAULT '',
            year_of_passing INTEGER NOT NULL,
            grade NUMERIC(5, 2) NOT NULL CHECK (grade >= 0 AND grade <= 100)
        );

        CREATE TABLE IF NOT EXISTS application_approvals (
            approval_id TEXT PRIMARY KEY,
            application_id TEXT NOT NULL REFERENCES applications(application_id),
            trust_id TEXT NOT NULL REFERENCES trusts(trust_id),
            approved_amount NUMERIC(15, 2) NOT NULL CHECK (approved_amount >= 0),
            status TEXT NOT NULL,
            remarks TEXT,
            created_at TIMESTAMPTZ NOT NULL,
            paid_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ,
            UNIQUE (application_id, trust_id)
        );

        CREATE INDEX IF NOT EXISTS idx_approvals_trust ON application_approvals(trust_id);
        CREATE INDEX IF NOT EXISTS idx_family_application ON family_members(application_id);
        CREATE INDEX IF NOT EXISTS idx_education_application ON education_history(application_id);
    """

    APPLICATION_COLUMNS = (
        "application_id, student_id, student_name, gender, course_name, city, academic_year, "
        "total_amount_requested, total_amount_approved, status, created_at, updated_at, closed_at"
    )
    APPROVAL_COLUMNS = (
        "approval_id, application_id, trust_id, approved_amount, status, remarks, "
        "created_at, paid_at, updated_at"
    )

    def __init__(
        self,
        connection_string: str,
        lock_timeout_ms: int = 5000,
        statement_timeout_ms: int | None = None,
    ) -> None:
        """Initialize PostgreSQL store.

        Parameters
        ----------
        connection_string : str
            PostgreSQL connection string.
        lock_timeout_ms : int
            Longest wait for an application row lock during an approval.
        statement_timeout_ms : int | None
            Server-side statement timeout for every connection.
        """
        try:
            import psycopg
        except ImportError as e:
            raise ImportError(
                "psycopg is required for PostgresStore. Install with: pip install 'psycopg[binary]'"
            ) from e

        self._psycopg = psycopg
        # Lock waits cut short by lock_timeout, statement_timeout, the deadlock
        # detector or serialization checks; the transaction was rolled back
        self._conflict_errors = (
            psycopg.errors.LockNotAvailable,
            psycopg.errors.QueryCanceled,
            psycopg.errors.DeadlockDetected,
            psycopg.errors.SerializationFailure,
        )
        self.connection_string = connection_string
        self.lock_timeout_ms = lock_timeout_ms
        self.statement_timeout_ms = statement_timeout_ms

    @classmethod
    def from_config(cls, config: PostgresConfig) -> "PostgresStore":
        """Create a store from the PostgreSQL settings."""
        return cls(
            config.connection_string,
            lock_timeout_ms=config.lock_timeout_ms,
            statement_timeout_ms=config.statement_timeout_ms,
        )

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        """Yield a cursor inside one transaction; commit on success."""
        kwargs = {}
        if self.statement_timeout_ms:
            kwargs["options"] = f"-c statement_timeout={self.statement_timeout_ms}"
        with self._psycopg.connect(self.connection_string, **kwargs) as conn:
            with conn.cursor() as cur:
                yield cur

    def create_tables(self) -> None:
        """Create tables if they don't exist."""
        with self._transaction() as cur:
            cur.execute(self.DDL)
        logger.info("Tables created/verified")

    # Trusts and preferences
    def add_trust(
        self,
        trust_id: str,
        preferences: TrustPreferences | None = None,
        name: str = "",
    ) -> None:
        """Register a trust; preferences default to "see everything"."""
        prefs = preferences or TrustPreferences()
        with self._transaction() as cur:
            cur.execute(
                "INSERT INTO trusts (trust_id, name, preferences) VALUES (%s, %s, %s::jsonb)",
                (trust_id, name, json.dumps(prefs.to_dict())),
            )

    def get_preferences(self, trust_id: str) -> TrustPreferences:
        """Load and validate a trust's stored preferences."""
        with self._transaction() as cur:
            cur.execute("SELECT preferences FROM trusts WHERE trust_id = %s", (trust_id,))
            row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"Trust {trust_id} not found")
        data = row[0]
        if isinstance(data, str):
            data = json.loads(data)
        return TrustPreferences.from_dict(data)

    def update_preferences(self, trust_id: str, preferences: TrustPreferences) -> TrustPreferences:
        """Replace a trust's preferences."""
        with self._transaction() as cur:
            cur.execute(
                "UPDATE trusts SET preferences = %s::jsonb, updated_at = now() WHERE trust_id = %s",
                (json.dumps(preferences.to_dict()), trust_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(f"Trust {trust_id} not found")
        return preferences

    # Applications
    def add_application(self, application: Application) -> None:
        """Insert an application with its family and education rows."""
        with self._transaction() as cur:
            cur.execute(
                f"INSERT INTO applications ({self.APPLICATION_COLUMNS}) "
                "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
                (
                    application.application_id,
                    application.student_id,
                    application.student_name,
                    application.gender,
                    application.course_name,
                    application.city,
                    application.academic_year,
                    application.total_amount_requested,
                    application.total_amount_approved,
                    application.status.value,
                    application.created_at,
                    application.updated_at,
                    application.closed_at,
                ),
            )
            if application.family_members:
                cur.executemany(
                    "INSERT INTO family_members "
                    "(member_id, application_id, name, relation, monthly_income) "
                    "VALUES (%s, %s, %s, %s, %s)",
                    [
                        (m.member_id, m.application_id, m.name, m.relation, m.monthly_income)
                        for m in application.family_members
                    ],
                )
            if application.education_history:
                cur.executemany(
                    "INSERT INTO education_history "
                    "(education_id, application_id, qualification, institution, year_of_passing, grade) "
                    "VALUES (%s, %s, %s, %s, %s, %s)",
                    [
                        (
                            e.education_id,
                            e.application_id,
                            e.qualification,
                            e.institution,
                            e.year_of_passing,
                            e.grade,
                        )
                        for e in application.education_history
                    ],
                )

    def get_application(self, application_id: str) -> Application:
        """Load one application with its family and education rows."""
        applications = self._load_applications("WHERE application_id = %s", (application_id,))
        if not applications:
            raise NotFoundError(f"Application {application_id} not found")
        return applications[0]

    def list_applications(self) -> list[Application]:
        """Load every application with its family and education rows."""
        return self._load_applications("", ())

    def _load_applications(self, where: str, params: tuple) -> list[Application]:
        with self._transaction() as cur:
            return self._fetch_applications(cur, where, params)

    def _fetch_applications(self, cur: Any, where: str, params: tuple) -> list[Application]:
        cur.execute(
            f"SELECT {self.APPLICATION_COLUMNS} FROM applications {where} ORDER BY created_at",
            params,
        )
        app_rows = cur.fetchall()
        if not app_rows:
            return []
        ids = [row[0] for row in app_rows]

        cur.execute(
            "SELECT member_id, application_id, name, relation, monthly_income "
            "FROM family_members WHERE application_id = ANY(%s)",
            (ids,),
        )
        family: dict[str, list[FamilyMember]] = defaultdict(list)
        for member_id, app_id, name, relation, income in cur.fetchall():
            family[app_id].append(
                FamilyMember(
                    member_id=member_id,
                    application_id=app_id,
                    monthly_income=income,
                    name=name,
                    relation=relation,
                )
            )

        cur.execute(
            "SELECT education_id, application_id, qualification, institution, year_of_passing, grade "
            "FROM education_history WHERE application_id = ANY(%s) "
            "ORDER BY year_of_passing DESC",
            (ids,),
        )
        education: dict[str, list[EducationHistory]] = defaultdict(list)
        for education_id, app_id, qualification, institution, year, grade in cur.fetchall():
            education[app_id].append(
                EducationHistory(
                    education_id=education_id,
                    application_id=app_id,
                    year_of_passing=year,
                    grade=grade,
                    qualification=qualification,
                    institution=institution,
                )
            )

        return [
            self._row_to_application(row, family.get(row[0], []), education.get(row[0], []))
            for row in app_rows
        ]

    # Approvals
    def get_approval(self, approval_id: str) -> Approval:
        """Get an approval by id."""
        with self._transaction() as cur:
            cur.execute(
                f"SELECT {self.APPROVAL_COLUMNS} FROM application_approvals WHERE approval_id = %s",
                (approval_id,),
            )
            row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"Approval {approval_id} not found")
        return self._row_to_approval(row)

    def get_application_approvals(self, application_id: str) -> list[Approval]:
        """Get all decisions recorded on an application."""
        with self._transaction() as cur:
            cur.execute(
                f"SELECT {self.APPROVAL_COLUMNS} FROM application_approvals "
                "WHERE application_id = %s ORDER BY created_at",
                (application_id,),
            )
            rows = cur.fetchall()
        return [self._row_to_approval(row) for row in rows]

    def get_trust_decisions(self, trust_id: str) -> dict[str, Approval]:
        """Get a trust's decisions keyed by application id."""
        with self._transaction() as cur:
            cur.execute(
                f"SELECT {self.APPROVAL_COLUMNS} FROM application_approvals WHERE trust_id = %s",
                (trust_id,),
            )
            rows = cur.fetchall()
        return {row[1]: self._row_to_approval(row) for row in rows}

    def commit_approval(
        self,
        application_id: str,
        trust_id: str,
        amount: Decimal,
        remarks: str | None = None,
        now: datetime | None = None,
    ) -> ApprovalResult:
        """Lock the application row, check the balance and record an approval.

        The row lock, the balance check, the approval insert and the aggregate
        update share one transaction; any failure rolls all of them back.
        """
        amount = ledger.parse_amount(amount)
        now = now or datetime.now()
        try:
            with self._transaction() as cur:
                requested, status = self._lock_application(cur, application_id)
                self._require_trust(cur, trust_id)
                self._require_no_decision(cur, application_id, trust_id)

                approved = self._approved_total(cur, application_id)
                new_total = ledger.check_allocation(application_id, status, requested, approved, amount)
                new_status = ledger.next_status(status, requested, new_total)

                approval = Approval(
                    approval_id=uuid.uuid4().hex,
                    application_id=application_id,
                    trust_id=trust_id,
                    approved_amount=amount,
                    status=ApprovalStatus.APPROVED,
                    remarks=remarks,
                    created_at=now,
                )
                self._insert_approval(cur, approval)
                self._update_aggregate(cur, application_id, new_total, new_status, now)
                # Still under the row lock: the aggregate this approval produced
                application = self._fetch_applications(
                    cur, "WHERE application_id = %s", (application_id,)
                )[0]
        except self._conflict_errors as e:
            raise ConcurrencyConflictError(
                f"Could not lock application {application_id}: {type(e).__name__}"
            ) from e
        except self._psycopg.errors.UniqueViolation as e:
            raise InvalidEntityStateError(
                f"Trust {trust_id} already decided on application {application_id}"
            ) from e

        return ApprovalResult(approval=approval, application=application)

    def record_rejection(
        self,
        application_id: str,
        trust_id: str,
        remarks: str | None = None,
        now: datetime | None = None,
    ) -> Approval:
        """Record a trust's rejection; the funding aggregate is untouched."""
        approval = Approval(
            approval_id=uuid.uuid4().hex,
            application_id=application_id,
            trust_id=trust_id,
            approved_amount=ledger.ZERO,
            status=ApprovalStatus.REJECTED,
            remarks=remarks,
            created_at=now or datetime.now(),
        )
        try:
            with self._transaction() as cur:
                self._lock_application(cur, application_id)
                self._require_trust(cur, trust_id)
                self._require_no_decision(cur, application_id, trust_id)
                self._insert_approval(cur, approval)
        except self._conflict_errors as e:
            raise ConcurrencyConflictError(
                f"Could not lock application {application_id}: {type(e).__name__}"
            ) from e
        except self._psycopg.errors.UniqueViolation as e:
            raise InvalidEntityStateError(
                f"Trust {trust_id} already decided on application {application_id}"
            ) from e
        return approval

    def import_approval(self, approval: Approval) -> None:
        """Insert an already-decided approval without touching the aggregate.

        Used when loading a generated funding round; run
        :meth:`reconcile_statuses` afterwards to recompute aggregates.
        """
        try:
            with self._transaction() as cur:
                self._insert_approval(cur, approval)
        except self._psycopg.errors.UniqueViolation as e:
            raise InvalidEntityStateError(
                f"Trust {approval.trust_id} already decided on application {approval.application_id}"
            ) from e

    def mark_paid(self, approval_id: str, trust_id: str, paid_at: datetime) -> Approval:
        """Record payment confirmation on an approval owned by ``trust_id``."""
        try:
            with self._transaction() as cur:
                self._set_lock_timeout(cur)
                cur.execute(
                    "SELECT status FROM application_approvals "
                    "WHERE approval_id = %s AND trust_id = %s FOR UPDATE",
                    (approval_id, trust_id),
                )
                row = cur.fetchone()
                if row is None:
                    raise NotFoundError(f"Approval {approval_id} not found for trust {trust_id}")
                if row[0] != ApprovalStatus.APPROVED.value:
                    raise InvalidEntityStateError(f"Approval {approval_id} is {row[0]}")
                cur.execute(
                    "UPDATE application_approvals SET paid_at = %s, updated_at = %s "
                    f"WHERE approval_id = %s RETURNING {self.APPROVAL_COLUMNS}",
                    (paid_at, paid_at, approval_id),
                )
                approval = self._row_to_approval(cur.fetchone())
        except self._conflict_errors as e:
            raise ConcurrencyConflictError(
                f"Could not lock approval {approval_id}: {type(e).__name__}"
            ) from e
        return approval

    def reconcile_statuses(self, now: datetime | None = None) -> dict[str, int]:
        """Recompute aggregates from approvals and repair statuses."""
        now = now or datetime.now()
        counts = {"closed": 0, "partially_approved": 0}
        try:
            with self._transaction() as cur:
                self._set_lock_timeout(cur)
                cur.execute(
                    "SELECT application_id, total_amount_requested, total_amount_approved, status "
                    "FROM applications WHERE status NOT IN ('closed', 'rejected') "
                    "ORDER BY application_id FOR UPDATE"
                )
                open_rows = cur.fetchall()
                cur.execute(
                    "SELECT application_id, SUM(approved_amount) FROM application_approvals "
                    "WHERE status = 'approved' GROUP BY application_id"
                )
                totals = {app_id: Decimal(total) for app_id, total in cur.fetchall()}

                for application_id, requested, stored_total, raw_status in open_rows:
                    approved = totals.get(application_id, ledger.ZERO)
                    status = ApplicationStatus(raw_status)
                    new_status = ledger.next_status(status, requested, approved)
                    if new_status == status and approved == stored_total:
                        continue
                    if new_status != status:
                        counts[new_status.value] = counts.get(new_status.value, 0) + 1
                    self._update_aggregate(cur, application_id, approved, new_status, now)
        except self._conflict_errors as e:
            raise ConcurrencyConflictError(
                f"Could not lock open applications: {type(e).__name__}"
            ) from e
        return counts

    # Helpers
    def _set_lock_timeout(self, cur: Any) -> None:
        # SET LOCAL cannot take bind parameters; set_config(..., true) is its equivalent
        cur.execute("SELECT set_config('lock_timeout', %s, true)", (f"{self.lock_timeout_ms}ms",))

    def _lock_application(self, cur: Any, application_id: str) -> tuple[Decimal, ApplicationStatus]:
        self._set_lock_timeout(cur)
        cur.execute(
            "SELECT total_amount_requested, status FROM applications "
            "WHERE application_id = %s FOR UPDATE",
            (application_id,),
        )
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"Application {application_id} not found")
        return row[0], ApplicationStatus(row[1])

    def _require_trust(self, cur: Any, trust_id: str) -> None:
        cur.execute("SELECT 1 FROM trusts WHERE trust_id = %s", (trust_id,))
        if cur.fetchone() is None:
            raise ReferentialIntegrityError(f"Trust {trust_id} not found")

    def _require_no_decision(self, cur: Any, application_id: str, trust_id: str) -> None:
        cur.execute(
            "SELECT status FROM application_approvals WHERE application_id = %s AND trust_id = %s",
            (application_id, trust_id),
        )
        row = cur.fetchone()
        if row is not None:
            raise InvalidEntityStateError(
                f"Trust {trust_id} already {row[0]} application {application_id}"
            )

    def _approved_total(self, cur: Any, application_id: str) -> Decimal:
        cur.execute(
            "SELECT COALESCE(SUM(approved_amount), 0) FROM application_approvals "
            "WHERE application_id = %s AND status = 'approved'",
            (application_id,),
        )
        return Decimal(cur.fetchone()[0])

    def _insert_approval(self, cur: Any, approval: Approval) -> None:
        cur.execute(
            f"INSERT INTO application_approvals ({self.APPROVAL_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)",
            (
                approval.approval_id,
                approval.application_id,
                approval.trust_id,
                approval.approved_amount,
                approval.status.value,
                approval.remarks,
                approval.created_at,
                approval.paid_at,
                approval.updated_at,
            ),
        )

    def _update_aggregate(
        self,
        cur: Any,
        application_id: str,
        total: Decimal,
        status: ApplicationStatus,
        now: datetime,
    ) -> None:
        cur.execute(
            "UPDATE applications SET total_amount_approved = %s, status = %s, updated_at = %s, "
            "closed_at = COALESCE(%s, closed_at) WHERE application_id = %s",
            (
                total,
                status.value,
                now,
                now if status == ApplicationStatus.CLOSED else None,
                application_id,
            ),
        )

    @staticmethod
    def _row_to_application(
        row: tuple,
        family: list[FamilyMember],
        education: list[EducationHistory],
    ) -> Application:
        return Application(
            application_id=row[0],
            student_id=row[1],
            student_name=row[2],
            gender=row[3],
            course_name=row[4],
            city=row[5],
            academic_year=row[6],
            total_amount_requested=row[7],
            total_amount_approved=row[8],
            status=ApplicationStatus(row[9]),
            created_at=row[10],
            updated_at=row[11],
            closed_at=row[12],
            family_members=family,
            education_history=education,
        )

    @staticmethod
    def _row_to_approval(row: tuple) -> Approval:
        return Approval(
            approval_id=row[0],
            application_id=row[1],
            trust_id=row[2],
            approved_amount=row[3],
            status=ApprovalStatus(row[4]),
            remarks=row[5],
            created_at=row[6],
            paid_at=row[7],
            updated_at=row[8],
        )
