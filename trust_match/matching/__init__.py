"""Scoring and ranking of applications against trust preferences."""

from trust_match.matching.metrics import ApplicationMetrics, compute_metrics
from trust_match.matching.pipeline import (
    DashboardEntry,
    DashboardStats,
    dashboard_stats,
    rank_applications,
    select_status_tab,
)
from trust_match.matching.scorer import MatchScorer, ScoreBreakdown, score_application

__all__ = [
    "ApplicationMetrics",
    "DashboardEntry",
    "DashboardStats",
    "MatchScorer",
    "ScoreBreakdown",
    "compute_metrics",
    "dashboard_stats",
    "rank_applications",
    "score_application",
    "select_status_tab",
]
