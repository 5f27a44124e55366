"""Tests for TrustDashboard."""

from datetime import datetime
from decimal import Decimal
from typing import Callable

import pytest

from trust_match.approvals import ApprovalWorkflow
from trust_match.dashboard import TrustDashboard
from trust_match.exceptions import NotFoundError
from trust_match.models import Application, ApprovalStatus, StatusTab, TrustPreferences, ViewMode
from trust_match.store.memory import InMemoryStore


@pytest.fixture
def round_store(
    make_application: Callable[..., Application],
    female_low_income_preferences: TrustPreferences,
) -> InMemoryStore:
    """Three applications, one selective trust and one open trust."""
    store = InMemoryStore()
    store.add_application(make_application("app-1", created_at=datetime(2024, 6, 1)))
    store.add_application(make_application("app-2", gender="Male", created_at=datetime(2024, 6, 2)))
    store.add_application(
        make_application("app-3", incomes=("5000",), created_at=datetime(2024, 6, 3))
    )
    store.add_trust("selective", female_low_income_preferences)
    store.add_trust("open")
    return store


class TestTrustDashboard:
    """Tests for TrustDashboard."""

    def test_filtered_default(self, round_store: InMemoryStore) -> None:
        entries = TrustDashboard(round_store).applications("selective")

        assert [e.application_id for e in entries] == ["app-3", "app-1"]

    def test_default_view_all(self, round_store: InMemoryStore) -> None:
        dashboard = TrustDashboard(round_store, default_view="all")

        entries = dashboard.applications("selective")

        assert len(entries) == 3
        assert entries[-1].application_id == "app-2"
        assert entries[-1].match_score == 65

    def test_explicit_view_overrides_default(self, round_store: InMemoryStore) -> None:
        dashboard = TrustDashboard(round_store, default_view=ViewMode.ALL)

        entries = dashboard.applications("selective", view=ViewMode.FILTERED)

        assert len(entries) == 2

    def test_rejection_moves_to_rejected_tab_for_that_trust_only(
        self, round_store: InMemoryStore
    ) -> None:
        ApprovalWorkflow(round_store).reject("app-1", "selective")
        dashboard = TrustDashboard(round_store)

        pending = dashboard.applications("selective")
        rejected = dashboard.applications("selective", view="all", status_tab=StatusTab.REJECTED)
        open_pending = dashboard.applications("open")

        assert [e.application_id for e in pending] == ["app-3"]
        assert [e.application_id for e in rejected] == ["app-1"]
        assert rejected[0].my_approval_status == ApprovalStatus.REJECTED
        assert "app-1" in {e.application_id for e in open_pending}

    def test_partially_funded_leaves_filtered_view(self, round_store: InMemoryStore) -> None:
        ApprovalWorkflow(round_store).approve("app-3", "open", "2500")
        dashboard = TrustDashboard(round_store)

        assert [e.application_id for e in dashboard.applications("selective")] == ["app-1"]
        all_view = dashboard.applications("selective", view="all")
        assert "app-3" in {e.application_id for e in all_view}

    def test_stats(self, round_store: InMemoryStore) -> None:
        workflow = ApprovalWorkflow(round_store)
        workflow.approve("app-1", "selective", "3000")
        workflow.reject("app-2", "selective")

        stats = TrustDashboard(round_store).stats("selective")

        assert stats.pending == 1
        assert stats.approved == 1
        assert stats.rejected == 1
        assert stats.total_approved == Decimal("3000")

    def test_unknown_trust(self, round_store: InMemoryStore) -> None:
        dashboard = TrustDashboard(round_store)

        with pytest.raises(NotFoundError):
            dashboard.applications("missing")
        with pytest.raises(NotFoundError):
            dashboard.stats("missing")
