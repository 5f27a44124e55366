"""Trust dashboard: ranked listing and counters for one trust."""

import logging
from typing import Any

from trust_match.matching.pipeline import (
    DashboardEntry,
    DashboardStats,
    dashboard_stats,
    rank_applications,
)
from trust_match.models.enums import StatusTab, ViewMode

logger = logging.getLogger(__name__)


class TrustDashboard:
    """Load a trust's preferences and the application pool, then rank.

    Parameters
    ----------
    store : InMemoryStore | PostgresStore
        Repository providing preferences, applications and decisions.
    default_view : ViewMode | str
        Mode used when ``applications`` is called without one.
    """

    def __init__(self, store: Any, default_view: ViewMode | str = ViewMode.FILTERED) -> None:
        self.store = store
        self.default_view = ViewMode(default_view)

    def applications(
        self,
        trust_id: str,
        view: ViewMode | str | None = None,
        status_tab: StatusTab | str = StatusTab.PENDING,
        rank_by_score: bool = True,
    ) -> list[DashboardEntry]:
        """Ranked applications for one trust and tab.

        Raises
        ------
        NotFoundError
            If the trust does not exist.
        """
        preferences = self.store.get_preferences(trust_id)
        mode = ViewMode(view) if view is not None else self.default_view

        entries = rank_applications(
            preferences,
            self.store.list_applications(),
            mode=mode,
            status_tab=status_tab,
            decisions=self.store.get_trust_decisions(trust_id),
            rank_by_score=rank_by_score,
        )
        logger.info(
            "Dashboard for trust %s: %d applications (view=%s, tab=%s)",
            trust_id,
            len(entries),
            mode.value,
            StatusTab(status_tab).value,
        )
        return entries

    def stats(self, trust_id: str) -> DashboardStats:
        """Pending, approved and rejected counters for one trust."""
        self.store.get_preferences(trust_id)
        return dashboard_stats(
            self.store.list_applications(),
            self.store.get_trust_decisions(trust_id),
        )
