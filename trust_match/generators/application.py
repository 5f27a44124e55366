"""Generators for scholarship applications and trust preferences."""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterator

from trust_match.generators.base import BaseGenerator
from trust_match.generators.pool import FakerPool
from trust_match.models.application import Application, EducationHistory, FamilyMember
from trust_match.models.enums import ApplicationStatus, Gender
from trust_match.models.preferences import TrustPreferences

COURSES = [
    "Computer Science Engineering",
    "Information Technology",
    "Mechanical Engineering",
    "Electronics and Communication",
    "Civil Engineering",
    "Medical (MBBS)",
    "Bachelor of Commerce",
    "Bachelor of Science",
]

GENDERS = [Gender.MALE, Gender.FEMALE, Gender.OTHER]
GENDER_WEIGHTS = [0.48, 0.48, 0.04]

RELATIONS = ["Father", "Mother", "Sibling", "Guardian"]
QUALIFICATIONS = ["Class 10", "Class 12", "Diploma", "Semester"]


class ApplicationGenerator(BaseGenerator):
    """Generate submitted applications with family and education rows.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale.
    pool : FakerPool | None
        Shared value pool.
    reference_time : datetime | None
        Submission timestamps fall in the 60 days before this instant
        (default: now).
    """

    # Requested amount range, whole thousands
    AMOUNT_RANGE = (10, 200)

    def __init__(
        self,
        seed: int | None = None,
        locale: str = "en_IN",
        pool: FakerPool | None = None,
        reference_time: datetime | None = None,
    ) -> None:
        super().__init__(seed, locale, pool)
        self.reference_time = reference_time or datetime.now()

    def generate(self) -> Application:
        """Generate a single application."""
        return self._generate_one()

    def generate_batch(self, count: int) -> Iterator[Application]:
        """Generate multiple applications.

        Parameters
        ----------
        count : int
            Number of applications to generate.

        Yields
        ------
        Application
            Generated applications.
        """
        for _ in range(count):
            yield self._generate_one()

    def _generate_one(self) -> Application:
        application_id = self.pool.uuid()
        created_at = self.reference_time - timedelta(
            days=random.randint(0, 59), minutes=random.randint(0, 24 * 60 - 1)
        )
        requested = Decimal(random.randint(*self.AMOUNT_RANGE) * 1000)

        return Application(
            application_id=application_id,
            student_id=self.pool.uuid(),
            student_name=self.pool.name(),
            gender=random.choices(GENDERS, weights=GENDER_WEIGHTS, k=1)[0].value,
            course_name=random.choice(COURSES),
            city=self.pool.city(),
            total_amount_requested=requested,
            status=ApplicationStatus.SUBMITTED,
            created_at=created_at,
            academic_year=_academic_year(self.reference_time),
            family_members=self._family(application_id),
            education_history=self._education(application_id),
        )

    def _family(self, application_id: str) -> list[FamilyMember]:
        members = []
        for relation in random.sample(RELATIONS, k=random.randint(1, 3)):
            # Log-normal monthly income; some members earn nothing
            if random.random() < 0.25:
                income = Decimal("0")
            else:
                income = Decimal(str(round(min(random.lognormvariate(mu=10.0, sigma=0.6), 250000), 2)))
            members.append(
                FamilyMember(
                    member_id=self.pool.uuid(),
                    application_id=application_id,
                    monthly_income=income,
                    name=self.pool.first_name(),
                    relation=relation,
                )
            )
        return members

    def _education(self, application_id: str) -> list[EducationHistory]:
        latest = self.reference_time.year - 1
        rows = []
        for offset in range(random.randint(1, 3)):
            grade = Decimal(str(round(random.uniform(45, 99), 2)))
            rows.append(
                EducationHistory(
                    education_id=self.pool.uuid(),
                    application_id=application_id,
                    year_of_passing=latest - offset,
                    grade=grade,
                    qualification=random.choice(QUALIFICATIONS),
                    institution=self.pool.institution(),
                )
            )
        return rows


class PreferencesGenerator(BaseGenerator):
    """Generate trust preferences over the same courses and cities."""

    def generate(self) -> TrustPreferences:
        """Generate one set of preferences.

        Each criterion is left open with some probability, so a batch
        mixes strict and permissive trusts.
        """
        gender = random.choice([Gender.ANY, Gender.ANY, Gender.FEMALE, Gender.MALE])
        courses = random.sample(COURSES, k=random.randint(2, 4)) if random.random() < 0.7 else []
        cities = self.pool.cities()
        if random.random() < 0.7:
            cities = random.sample(cities, k=min(len(cities), random.randint(2, 5)))
        else:
            cities = []

        max_income = Decimal(random.choice([3, 5, 8, 10])) if random.random() < 0.6 else None
        min_academic = Decimal(random.choice([0, 5, 10, 20])) if random.random() < 0.5 else None

        return TrustPreferences(
            preferred_gender=gender,
            preferred_courses=frozenset(courses),
            preferred_cities=frozenset(cities),
            max_family_income_lpa=max_income,
            min_academic_percentage=min_academic,
        )


def _academic_year(now: datetime) -> str:
    start = now.year if now.month >= 6 else now.year - 1
    return f"{start}-{str(start + 1)[-2:]}"
