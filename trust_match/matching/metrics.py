"""Derived per-application metrics used by scoring, filtering and reporting.

``compute_metrics`` is the only place these numbers are produced. The
dashboard, the smart filter and any ad-hoc report must all call it so that a
trust never sees an application pass one view and fail another.
"""

from dataclasses import dataclass
from decimal import Context, Decimal, InvalidOperation
from typing import Iterable

from trust_match.exceptions import ValidationError
from trust_match.models.application import Application, EducationHistory, FamilyMember

# Fixed context so results do not depend on the caller's decimal settings
_CONTEXT = Context(prec=28)

WEIGHT_LATEST = Decimal("0.5")
WEIGHT_PREVIOUS_YEAR = Decimal("0.3")
WEIGHT_OLDER = Decimal("0.2")

MONTHS_PER_YEAR = Decimal("12")
ONE_LAKH = Decimal("100000")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ApplicationMetrics:
    """Financial and academic figures derived from an application's rows."""

    weighted_academic_score: Decimal
    total_family_income_lpa: Decimal


def compute_metrics(application: Application) -> ApplicationMetrics:
    """Compute both derived metrics for one application.

    Parameters
    ----------
    application : Application
        Application with its family members and education history loaded.

    Returns
    -------
    ApplicationMetrics
        Weighted academic score and family income in lakhs per annum.

    Raises
    ------
    ValidationError
        If a grade lies outside [0, 100] or an income is negative.
    """
    return ApplicationMetrics(
        weighted_academic_score=weighted_academic_score(application.education_history),
        total_family_income_lpa=total_family_income_lpa(application.family_members),
    )


def recency_weight(year_of_passing: int, latest_year: int) -> Decimal:
    """Weight of a qualification relative to the most recent one."""
    if year_of_passing == latest_year:
        return WEIGHT_LATEST
    if year_of_passing == latest_year - 1:
        return WEIGHT_PREVIOUS_YEAR
    return WEIGHT_OLDER


def weighted_academic_score(education_history: Iterable[EducationHistory]) -> Decimal:
    """Mean of ``grade * recency_weight`` over every education row.

    Each row contributes on its own; rows sharing a year are not collapsed.
    Returns 0 when there are no rows.
    """
    rows = list(education_history)
    if not rows:
        return ZERO

    latest_year = max(row.year_of_passing for row in rows)
    total = ZERO
    for row in rows:
        grade = _as_decimal(row.grade, "grade")
        if grade < ZERO or grade > HUNDRED:
            raise ValidationError(f"grade must be between 0 and 100, got {row.grade!r}", field="grade")
        contribution = _CONTEXT.multiply(grade, recency_weight(row.year_of_passing, latest_year))
        total = _CONTEXT.add(total, contribution)

    return _CONTEXT.divide(total, Decimal(len(rows)))


def total_family_income_lpa(family_members: Iterable[FamilyMember]) -> Decimal:
    """Annual family income in lakhs: ``sum(monthly_income) * 12 / 100000``."""
    monthly_total = ZERO
    for member in family_members:
        income = _as_decimal(member.monthly_income, "monthly_income")
        if income < ZERO:
            raise ValidationError(
                f"monthly_income must not be negative, got {member.monthly_income!r}",
                field="monthly_income",
            )
        monthly_total = _CONTEXT.add(monthly_total, income)

    return _CONTEXT.divide(_CONTEXT.multiply(monthly_total, MONTHS_PER_YEAR), ONE_LAKH)


def _as_decimal(value: Decimal | int | str, field: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        try:
            return Decimal(value)
        except InvalidOperation as e:
            raise ValidationError(f"{field} must be a decimal value, got {value!r}", field=field) from e
    raise ValidationError(f"{field} must be a decimal value, got {value!r}", field=field)
