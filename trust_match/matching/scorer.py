"""Weighted match score between a trust's preferences and an application."""

import logging
from dataclasses import dataclass

from trust_match.matching.metrics import ApplicationMetrics, compute_metrics
from trust_match.models.application import Application
from trust_match.models.enums import Gender
from trust_match.models.preferences import TrustPreferences

logger = logging.getLogger(__name__)

# Points per criterion; they sum to 100
GENDER_POINTS = 35
COURSE_POINTS = 30
CITY_POINTS = 15
INCOME_POINTS = 15
ACADEMIC_POINTS = 5

MAX_SCORE = GENDER_POINTS + COURSE_POINTS + CITY_POINTS + INCOME_POINTS + ACADEMIC_POINTS


@dataclass(frozen=True)
class ScoreBreakdown:
    """Points awarded per criterion. Each is either zero or the full weight."""

    gender: int
    course: int
    city: int
    income: int
    academic: int

    @property
    def total(self) -> int:
        """Match score in [0, 100]."""
        return self.gender + self.course + self.city + self.income + self.academic

    @property
    def is_perfect_match(self) -> bool:
        """True when every criterion passed."""
        return self.total == MAX_SCORE


class MatchScorer:
    """Score applications against one trust's preferences.

    Criteria are binary: an unset preference always passes, a set one awards
    its full points or nothing.

    Parameters
    ----------
    preferences : TrustPreferences
        Validated preferences of the trust.
    """

    def __init__(self, preferences: TrustPreferences) -> None:
        self.preferences = preferences

    def gender_matches(self, application: Application) -> bool:
        preferred = self.preferences.preferred_gender
        return preferred == Gender.ANY or preferred.value == application.gender

    def course_matches(self, application: Application) -> bool:
        courses = self.preferences.preferred_courses
        return not courses or application.course_name in courses

    def city_matches(self, application: Application) -> bool:
        cities = self.preferences.preferred_cities
        return not cities or application.city in cities

    def income_matches(self, metrics: ApplicationMetrics) -> bool:
        ceiling = self.preferences.max_family_income_lpa
        return ceiling is None or metrics.total_family_income_lpa <= ceiling

    def academic_matches(self, metrics: ApplicationMetrics) -> bool:
        floor = self.preferences.min_academic_percentage
        return floor is None or metrics.weighted_academic_score >= floor

    def breakdown(
        self,
        application: Application,
        metrics: ApplicationMetrics | None = None,
    ) -> ScoreBreakdown:
        """Score one application criterion by criterion.

        Parameters
        ----------
        application : Application
            Application to score.
        metrics : ApplicationMetrics | None
            Precomputed metrics; computed from the application when omitted.

        Returns
        -------
        ScoreBreakdown
            Points per criterion.
        """
        if metrics is None:
            metrics = compute_metrics(application)

        result = ScoreBreakdown(
            gender=GENDER_POINTS if self.gender_matches(application) else 0,
            course=COURSE_POINTS if self.course_matches(application) else 0,
            city=CITY_POINTS if self.city_matches(application) else 0,
            income=INCOME_POINTS if self.income_matches(metrics) else 0,
            academic=ACADEMIC_POINTS if self.academic_matches(metrics) else 0,
        )
        logger.debug("Scored application %s: %s", application.application_id, result)
        return result

    def score(
        self,
        application: Application,
        metrics: ApplicationMetrics | None = None,
    ) -> int:
        """Return the integer match score in [0, 100]."""
        return self.breakdown(application, metrics).total


def score_application(
    preferences: TrustPreferences,
    application: Application,
    metrics: ApplicationMetrics | None = None,
) -> int:
    """Convenience wrapper around :meth:`MatchScorer.score`."""
    return MatchScorer(preferences).score(application, metrics)
