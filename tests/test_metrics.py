"""Tests for derived application metrics."""

from decimal import Decimal, localcontext
from typing import Callable

import pytest

from trust_match.exceptions import ValidationError
from trust_match.matching.metrics import (
    compute_metrics,
    recency_weight,
    total_family_income_lpa,
    weighted_academic_score,
)
from trust_match.models import Application, EducationHistory, FamilyMember

TWO_PLACES = Decimal("0.01")


def _education(year: int, grade: str) -> EducationHistory:
    return EducationHistory(
        education_id=f"ed-{year}-{grade}",
        application_id="app-001",
        year_of_passing=year,
        grade=Decimal(grade),
    )


def _member(income: str) -> FamilyMember:
    return FamilyMember(member_id=f"fm-{income}", application_id="app-001", monthly_income=Decimal(income))


class TestRecencyWeight:
    """Tests for recency_weight."""

    def test_weights(self) -> None:
        assert recency_weight(2023, 2023) == Decimal("0.5")
        assert recency_weight(2022, 2023) == Decimal("0.3")
        assert recency_weight(2021, 2023) == Decimal("0.2")
        assert recency_weight(2015, 2023) == Decimal("0.2")


class TestWeightedAcademicScore:
    """Tests for weighted_academic_score."""

    def test_three_years(self) -> None:
        """average(90*0.5, 80*0.3, 70*0.2) = 83 / 3."""
        rows = [_education(2023, "90"), _education(2022, "80"), _education(2021, "70")]

        score = weighted_academic_score(rows)

        assert score.quantize(TWO_PLACES) == Decimal("27.67")

    def test_single_row(self) -> None:
        assert weighted_academic_score([_education(2023, "80")]) == Decimal("40")

    def test_no_rows(self) -> None:
        assert weighted_academic_score([]) == Decimal("0")

    def test_rows_sharing_a_year_count_separately(self) -> None:
        rows = [_education(2023, "90"), _education(2023, "70"), _education(2022, "80")]

        # (45 + 35 + 24) / 3
        assert weighted_academic_score(rows).quantize(TWO_PLACES) == Decimal("34.67")

    def test_order_independent(self) -> None:
        rows = [_education(2021, "70"), _education(2023, "90"), _education(2022, "80")]

        assert weighted_academic_score(rows) == weighted_academic_score(list(reversed(rows)))

    def test_grade_out_of_range(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            weighted_academic_score([_education(2023, "101")])

        assert exc_info.value.field == "grade"

    def test_independent_of_caller_context(self) -> None:
        rows = [_education(2023, "90"), _education(2022, "80"), _education(2021, "70")]
        expected = weighted_academic_score(rows)

        with localcontext() as ctx:
            ctx.prec = 3
            assert weighted_academic_score(rows) == expected


class TestTotalFamilyIncome:
    """Tests for total_family_income_lpa."""

    def test_sum_annualised_in_lakhs(self) -> None:
        members = [_member("30000"), _member("20000")]

        assert total_family_income_lpa(members) == Decimal("6")

    def test_no_members(self) -> None:
        assert total_family_income_lpa([]) == Decimal("0")

    def test_negative_income(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            total_family_income_lpa([_member("-1")])

        assert exc_info.value.field == "monthly_income"

    def test_fractional_income_exact(self) -> None:
        assert total_family_income_lpa([_member("12345.67")]) == Decimal("1.4814804")


class TestComputeMetrics:
    """Tests for compute_metrics."""

    def test_both_metrics(self, sample_application: Application) -> None:
        metrics = compute_metrics(sample_application)

        assert metrics.total_family_income_lpa == Decimal("2.4")
        assert metrics.weighted_academic_score.quantize(TWO_PLACES) == Decimal("27.67")

    def test_idempotent(self, make_application: Callable[..., Application]) -> None:
        app = make_application(incomes=("15000.50", "7000"), grades={2024: "88.5", 2023: "91"})

        assert compute_metrics(app) == compute_metrics(app)

    def test_frozen(self, sample_application: Application) -> None:
        metrics = compute_metrics(sample_application)

        with pytest.raises(AttributeError):
            metrics.total_family_income_lpa = Decimal("0")  # type: ignore[misc]
