"""Trust preference model.

Preferences arrive as a loosely typed JSON blob (that is how the trust
settings screen stores them). ``TrustPreferences.from_dict`` is the boundary
where that blob becomes a validated, immutable value; the scorer never sees
malformed values.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from trust_match.exceptions import ValidationError
from trust_match.models.enums import Gender

_PERCENT_MAX = Decimal("100")


@dataclass(frozen=True)
class TrustPreferences:
    """Filter and weighting criteria declared by one trust.

    Empty sets and ``None`` limits mean "no filter" for that criterion, so
    ``TrustPreferences()`` matches every application.
    """

    preferred_gender: Gender = Gender.ANY
    preferred_courses: frozenset[str] = field(default_factory=frozenset)
    preferred_cities: frozenset[str] = field(default_factory=frozenset)
    max_family_income_lpa: Decimal | None = None
    min_academic_percentage: Decimal | None = None

    def __post_init__(self) -> None:
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, "preferred_gender", _parse_gender(self.preferred_gender))
        object.__setattr__(
            self, "preferred_courses", _parse_names(self.preferred_courses, "preferred_courses")
        )
        object.__setattr__(
            self, "preferred_cities", _parse_names(self.preferred_cities, "preferred_cities")
        )
        object.__setattr__(
            self,
            "max_family_income_lpa",
            _parse_decimal(self.max_family_income_lpa, "max_family_income_lpa"),
        )
        object.__setattr__(
            self,
            "min_academic_percentage",
            _parse_decimal(
                self.min_academic_percentage, "min_academic_percentage", upper=_PERCENT_MAX
            ),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TrustPreferences":
        """Build preferences from the stored JSON blob.

        Unknown keys are ignored; missing keys take their defaults.

        Raises
        ------
        ValidationError
            If any value is malformed; ``field`` names the offending key.
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("Preferences must be a JSON object", field=None)

        return cls(
            preferred_gender=data.get("preferred_gender") or Gender.ANY,
            preferred_courses=data.get("preferred_courses") or frozenset(),
            preferred_cities=data.get("preferred_cities") or frozenset(),
            max_family_income_lpa=data.get("max_family_income_lpa"),
            min_academic_percentage=data.get("min_academic_percentage"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON blob shape (sorted lists, decimals as strings)."""
        return {
            "preferred_gender": self.preferred_gender.value,
            "preferred_courses": sorted(self.preferred_courses),
            "preferred_cities": sorted(self.preferred_cities),
            "max_family_income_lpa": (
                str(self.max_family_income_lpa) if self.max_family_income_lpa is not None else None
            ),
            "min_academic_percentage": (
                str(self.min_academic_percentage)
                if self.min_academic_percentage is not None
                else None
            ),
        }

    @property
    def is_default(self) -> bool:
        """True when no criterion restricts anything."""
        return self == TrustPreferences()


def _parse_gender(value: Any) -> Gender:
    if isinstance(value, Gender):
        return value
    if isinstance(value, str):
        for gender in Gender:
            if gender.value.lower() == value.strip().lower():
                return gender
    raise ValidationError(
        f"preferred_gender must be one of {[g.value for g in Gender]}, got {value!r}",
        field="preferred_gender",
    )


def _parse_names(value: Any, field_name: str) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValidationError(f"{field_name} must be a list of strings", field=field_name)

    names = set()
    for item in value:
        if not isinstance(item, str):
            raise ValidationError(
                f"{field_name} must contain only strings, got {item!r}", field=field_name
            )
        item = item.strip()
        if item:
            names.add(item)
    return frozenset(names)


def _parse_decimal(
    value: Any,
    field_name: str,
    upper: Decimal | None = None,
) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, got {value!r}", field=field_name)

    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(
            f"{field_name} must be a number, got {value!r}", field=field_name
        ) from e

    if not number.is_finite():
        raise ValidationError(f"{field_name} must be finite, got {value!r}", field=field_name)
    if number < 0:
        raise ValidationError(f"{field_name} must not be negative, got {value!r}", field=field_name)
    if upper is not None and number > upper:
        raise ValidationError(
            f"{field_name} must be between 0 and {upper}, got {value!r}", field=field_name
        )
    return number
