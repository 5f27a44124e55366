"""Pytest configuration and fixtures."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

import pytest

from trust_match.models import (
    Application,
    ApplicationStatus,
    EducationHistory,
    FamilyMember,
    TrustPreferences,
)
from trust_match.store.memory import InMemoryStore


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def sample_application_id() -> str:
    """Sample application ID."""
    return "app-test-001"


@pytest.fixture
def sample_trust_id() -> str:
    """Sample trust ID."""
    return "trust-test-001"


@pytest.fixture
def make_application() -> Callable[..., Application]:
    """Factory for applications with family and education rows.

    ``incomes`` are monthly incomes, one family member each; ``grades`` maps
    year of passing to grade.
    """

    def _make(
        application_id: str = "app-test-001",
        gender: str = "Female",
        course_name: str = "Computer Science Engineering",
        city: str = "Mumbai",
        requested: str = "10000",
        incomes: tuple[str, ...] = ("20000",),
        grades: dict[int, str] | None = None,
        status: ApplicationStatus = ApplicationStatus.SUBMITTED,
        created_at: datetime | None = None,
        **overrides: Any,
    ) -> Application:
        grades = grades if grades is not None else {2023: "90", 2022: "80", 2021: "70"}
        return Application(
            application_id=application_id,
            student_id=f"student-{application_id}",
            student_name=f"Student {application_id}",
            gender=gender,
            course_name=course_name,
            city=city,
            total_amount_requested=Decimal(requested),
            status=status,
            created_at=created_at or datetime(2024, 6, 1, 10, 0),
            academic_year="2024-25",
            family_members=[
                FamilyMember(
                    member_id=f"{application_id}-fm-{i}",
                    application_id=application_id,
                    monthly_income=Decimal(income),
                )
                for i, income in enumerate(incomes)
            ],
            education_history=[
                EducationHistory(
                    education_id=f"{application_id}-ed-{year}",
                    application_id=application_id,
                    year_of_passing=year,
                    grade=Decimal(grade),
                )
                for year, grade in grades.items()
            ],
            **overrides,
        )

    return _make


@pytest.fixture
def sample_application(make_application: Callable[..., Application]) -> Application:
    """Application requesting 10,000 with 2.4 LPA family income."""
    return make_application()


@pytest.fixture
def female_low_income_preferences() -> TrustPreferences:
    """Female applicants with family income up to 5 LPA."""
    return TrustPreferences(preferred_gender="Female", max_family_income_lpa=Decimal("5"))


@pytest.fixture
def store(sample_application: Application, sample_trust_id: str) -> InMemoryStore:
    """Store holding the sample application and two trusts."""
    store = InMemoryStore(lock_timeout=1.0)
    store.add_application(sample_application)
    store.add_trust(sample_trust_id)
    store.add_trust("trust-test-002")
    return store
