"""Filter & rank pipeline behind the trust dashboard.

Ordering contract (both modes):

1. match score, descending
2. family income in lakhs per annum, ascending (greater need first)
3. submission timestamp, ascending (earliest first)

In filtered mode ("smart filtering") only ``submitted`` applications that pass
every criterion are kept, so step 1 never separates two rows there. In "all"
mode the score is still computed for display; callers choose with
``rank_by_score`` whether it drives the ordering.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping

from trust_match.matching.metrics import ApplicationMetrics, compute_metrics
from trust_match.matching.scorer import MatchScorer
from trust_match.models.application import Application
from trust_match.models.approval import Approval
from trust_match.models.enums import ApplicationStatus, ApprovalStatus, StatusTab, ViewMode
from trust_match.models.preferences import TrustPreferences

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class DashboardEntry:
    """One row of a trust's dashboard listing."""

    application_id: str
    student_name: str
    gender: str
    course_name: str
    city: str
    academic_year: str
    status: ApplicationStatus
    created_at: datetime
    total_amount_requested: Decimal
    total_amount_approved: Decimal
    total_family_income_lpa: Decimal
    weighted_academic_score: Decimal
    match_score: int | None
    my_approval_status: ApprovalStatus | None = None
    my_approved_amount: Decimal | None = None
    my_approved_at: datetime | None = None


@dataclass
class DashboardStats:
    """Per-trust counters shown above the listing."""

    pending: int = 0
    approved: int = 0
    rejected: int = 0
    total_requested: Decimal = ZERO  # across pending applications
    total_approved: Decimal = ZERO  # approved by this trust


def select_status_tab(
    applications: Iterable[Application],
    decisions: Mapping[str, Approval],
    status_tab: StatusTab,
) -> list[Application]:
    """Select the applications shown under one dashboard tab.

    Parameters
    ----------
    applications : Iterable[Application]
        Application pool.
    decisions : Mapping[str, Approval]
        This trust's decisions keyed by application id.
    status_tab : StatusTab
        ``pending`` keeps applications the trust has not decided on and that
        are not closed; ``approved`` / ``rejected`` keep applications the trust
        decided on that way.
    """
    status_tab = StatusTab(status_tab)
    if status_tab == StatusTab.PENDING:
        return [
            app
            for app in applications
            if app.application_id not in decisions and app.status != ApplicationStatus.CLOSED
        ]

    wanted = ApprovalStatus.APPROVED if status_tab == StatusTab.APPROVED else ApprovalStatus.REJECTED
    return [
        app
        for app in applications
        if app.application_id in decisions and decisions[app.application_id].status == wanted
    ]


def rank_applications(
    preferences: TrustPreferences,
    applications: Iterable[Application],
    mode: ViewMode | str = ViewMode.FILTERED,
    status_tab: StatusTab | str = StatusTab.PENDING,
    decisions: Mapping[str, Approval] | None = None,
    rank_by_score: bool = True,
) -> list[DashboardEntry]:
    """Filter, score and sort applications for one trust.

    Parameters
    ----------
    preferences : TrustPreferences
        The trust's validated preferences.
    applications : Iterable[Application]
        Application pool with family and education rows loaded.
    mode : ViewMode | str
        ``filtered`` keeps only submitted perfect matches; ``all`` keeps the
        whole tab.
    status_tab : StatusTab | str
        Dashboard tab, see :func:`select_status_tab`.
    decisions : Mapping[str, Approval] | None
        The trust's own decisions keyed by application id.
    rank_by_score : bool
        In ``all`` mode, whether the score is the primary sort key. Filtered
        mode always ranks by score.

    Returns
    -------
    list[DashboardEntry]
        Ordered dashboard rows.
    """
    mode = ViewMode(mode)
    decisions = decisions or {}
    scorer = MatchScorer(preferences)

    scored: list[tuple[Application, ApplicationMetrics, int]] = []
    for application in select_status_tab(applications, decisions, status_tab):
        if mode == ViewMode.FILTERED and application.status != ApplicationStatus.SUBMITTED:
            continue
        metrics = compute_metrics(application)
        breakdown = scorer.breakdown(application, metrics)
        if mode == ViewMode.FILTERED and not breakdown.is_perfect_match:
            continue
        scored.append((application, metrics, breakdown.total))

    use_score = rank_by_score or mode == ViewMode.FILTERED
    scored.sort(
        key=lambda item: (
            -item[2] if use_score else 0,
            item[1].total_family_income_lpa,
            item[0].created_at,
        )
    )

    logger.debug(
        "Ranked %d applications (mode=%s, tab=%s)", len(scored), mode.value, StatusTab(status_tab).value
    )
    return [
        _to_entry(application, metrics, score, decisions.get(application.application_id))
        for application, metrics, score in scored
    ]


def dashboard_stats(
    applications: Iterable[Application],
    decisions: Mapping[str, Approval],
) -> DashboardStats:
    """Count pending, approved and rejected applications for one trust."""
    stats = DashboardStats()
    for application in applications:
        decision = decisions.get(application.application_id)
        if decision is None:
            if application.status != ApplicationStatus.CLOSED:
                stats.pending += 1
                stats.total_requested += application.total_amount_requested
        elif decision.status == ApprovalStatus.APPROVED:
            stats.approved += 1
            stats.total_approved += decision.approved_amount
        else:
            stats.rejected += 1
    return stats


def _to_entry(
    application: Application,
    metrics: ApplicationMetrics,
    score: int,
    decision: Approval | None,
) -> DashboardEntry:
    return DashboardEntry(
        application_id=application.application_id,
        student_name=application.student_name,
        gender=application.gender,
        course_name=application.course_name,
        city=application.city,
        academic_year=application.academic_year,
        status=application.status,
        created_at=application.created_at,
        total_amount_requested=application.total_amount_requested,
        total_amount_approved=application.total_amount_approved,
        total_family_income_lpa=metrics.total_family_income_lpa,
        weighted_academic_score=metrics.weighted_academic_score,
        match_score=score,
        my_approval_status=decision.status if decision else None,
        my_approved_amount=decision.approved_amount if decision else None,
        my_approved_at=decision.created_at if decision else None,
    )
