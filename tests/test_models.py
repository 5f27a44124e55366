"""Tests for domain models."""

from datetime import datetime
from decimal import Decimal
from typing import Callable

import pytest

from trust_match.exceptions import ValidationError
from trust_match.models import (
    Application,
    ApplicationStatus,
    Approval,
    ApprovalResult,
    ApprovalStatus,
    Event,
    Gender,
    StatusTab,
    TrustPreferences,
    ViewMode,
)


class TestEnums:
    """Tests for string enums."""

    def test_values_match_stored_strings(self) -> None:
        assert ApplicationStatus.PARTIALLY_APPROVED.value == "partially_approved"
        assert ApprovalStatus.REJECTED.value == "rejected"
        assert Gender.FEMALE.value == "Female"
        assert ViewMode("all") == ViewMode.ALL
        assert StatusTab("pending") == StatusTab.PENDING

    def test_str_comparison(self) -> None:
        assert ApplicationStatus.CLOSED == "closed"


class TestTrustPreferences:
    """Tests for TrustPreferences validation."""

    def test_defaults_match_everything(self) -> None:
        prefs = TrustPreferences()

        assert prefs.preferred_gender == Gender.ANY
        assert prefs.preferred_courses == frozenset()
        assert prefs.preferred_cities == frozenset()
        assert prefs.max_family_income_lpa is None
        assert prefs.min_academic_percentage is None
        assert prefs.is_default

    def test_from_dict_normalises(self) -> None:
        prefs = TrustPreferences.from_dict(
            {
                "preferred_gender": "female",
                "preferred_courses": [" Computer Science Engineering ", "", "Information Technology"],
                "preferred_cities": ["Delhi"],
                "max_family_income_lpa": "5",
                "min_academic_percentage": 20,
            }
        )

        assert prefs.preferred_gender == Gender.FEMALE
        assert prefs.preferred_courses == frozenset(
            {"Computer Science Engineering", "Information Technology"}
        )
        assert prefs.preferred_cities == frozenset({"Delhi"})
        assert prefs.max_family_income_lpa == Decimal("5")
        assert prefs.min_academic_percentage == Decimal("20")
        assert not prefs.is_default

    def test_from_dict_none(self) -> None:
        assert TrustPreferences.from_dict(None) == TrustPreferences()

    def test_from_dict_empty_values_are_unset(self) -> None:
        prefs = TrustPreferences.from_dict(
            {
                "preferred_gender": "",
                "preferred_courses": None,
                "max_family_income_lpa": "",
                "min_academic_percentage": None,
            }
        )

        assert prefs.is_default

    def test_from_dict_ignores_unknown_keys(self) -> None:
        prefs = TrustPreferences.from_dict({"preferred_states": ["Kerala"]})

        assert prefs.is_default

    def test_from_dict_rejects_non_object(self) -> None:
        with pytest.raises(ValidationError):
            TrustPreferences.from_dict(["Female"])  # type: ignore[arg-type]

    def test_unknown_gender(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            TrustPreferences(preferred_gender="Unknown")

        assert exc_info.value.field == "preferred_gender"

    def test_courses_must_be_list(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            TrustPreferences.from_dict({"preferred_courses": "Computer Science Engineering"})

        assert exc_info.value.field == "preferred_courses"

    def test_cities_must_contain_strings(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            TrustPreferences.from_dict({"preferred_cities": ["Delhi", 42]})

        assert exc_info.value.field == "preferred_cities"

    @pytest.mark.parametrize("value", ["abc", "-1", "NaN", "Infinity", True])
    def test_invalid_income_limit(self, value: object) -> None:
        with pytest.raises(ValidationError) as exc_info:
            TrustPreferences.from_dict({"max_family_income_lpa": value})

        assert exc_info.value.field == "max_family_income_lpa"

    def test_academic_minimum_above_100(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            TrustPreferences(min_academic_percentage=Decimal("100.5"))

        assert exc_info.value.field == "min_academic_percentage"

    def test_to_dict(self) -> None:
        prefs = TrustPreferences(
            preferred_gender=Gender.MALE,
            preferred_cities=frozenset({"Pune", "Chennai"}),
            max_family_income_lpa=Decimal("3.5"),
        )

        assert prefs.to_dict() == {
            "preferred_gender": "Male",
            "preferred_courses": [],
            "preferred_cities": ["Chennai", "Pune"],
            "max_family_income_lpa": "3.5",
            "min_academic_percentage": None,
        }

    def test_frozen(self) -> None:
        prefs = TrustPreferences()

        with pytest.raises(AttributeError):
            prefs.preferred_gender = Gender.MALE  # type: ignore[misc]


class TestApplication:
    """Tests for Application."""

    def test_remaining_amount(self, make_application: Callable[..., Application]) -> None:
        app = make_application(requested="10000", total_amount_approved=Decimal("6000"))

        assert app.remaining_amount == Decimal("4000")

    def test_defaults(self, sample_application: Application) -> None:
        assert sample_application.total_amount_approved == Decimal("0")
        assert sample_application.closed_at is None


class TestApprovalResult:
    """Tests for ApprovalResult."""

    def _approval(self) -> Approval:
        return Approval(
            approval_id="apr-001",
            application_id="app-test-001",
            trust_id="trust-test-001",
            approved_amount=Decimal("10000"),
            status=ApprovalStatus.APPROVED,
            created_at=datetime(2024, 6, 2),
        )

    def test_closed(self, make_application: Callable[..., Application]) -> None:
        app = make_application(status=ApplicationStatus.CLOSED)

        assert ApprovalResult(self._approval(), app).closed is True

    def test_not_closed(self, make_application: Callable[..., Application]) -> None:
        app = make_application(status=ApplicationStatus.PARTIALLY_APPROVED)

        assert ApprovalResult(self._approval(), app).closed is False


class TestEvent:
    """Tests for the Event envelope."""

    def test_metadata_default(self) -> None:
        event = Event(
            event_id="evt-001",
            event_type="approval.created",
            event_time=datetime(2024, 6, 2),
            source="trust-match",
            subject="app-001",
            data={},
        )

        assert event.metadata == {}
