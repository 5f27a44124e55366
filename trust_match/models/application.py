"""Application models as seen by the matching engine."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from trust_match.models.enums import ApplicationStatus


@dataclass
class FamilyMember:
    """Family member declared on an application."""

    member_id: str
    application_id: str
    monthly_income: Decimal  # Non-negative, base currency
    name: str = ""
    relation: str = ""


@dataclass
class EducationHistory:
    """One completed qualification on an application."""

    education_id: str
    application_id: str
    year_of_passing: int
    grade: Decimal  # Percentage, 0-100
    qualification: str = ""
    institution: str = ""


@dataclass
class Application:
    """Scholarship application projected for trust review."""

    application_id: str
    student_id: str
    student_name: str
    gender: str
    course_name: str
    city: str
    total_amount_requested: Decimal
    status: ApplicationStatus
    created_at: datetime  # Submission timestamp
    total_amount_approved: Decimal = Decimal("0")
    academic_year: str = ""
    family_members: list[FamilyMember] = field(default_factory=list)
    education_history: list[EducationHistory] = field(default_factory=list)
    updated_at: datetime | None = None
    closed_at: datetime | None = None

    @property
    def remaining_amount(self) -> Decimal:
        """Amount that can still be approved."""
        return self.total_amount_requested - self.total_amount_approved
