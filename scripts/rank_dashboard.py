#!/usr/bin/env python3
"""Print a trust's ranked dashboard.

Reads the funding round from PostgreSQL (--postgres-url) or generates one in
memory, then prints each trust's tab with match scores, family income and
weighted academic score.
"""

import argparse
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from trust_match.config import TrustMatchConfig
from trust_match.dashboard import TrustDashboard
from trust_match.exceptions import TrustMatchError
from trust_match.logging import get_logger, setup_logging
from trust_match.matching.pipeline import DashboardEntry, DashboardStats
from trust_match.models.enums import StatusTab, ViewMode
from trust_match.scenarios import FundingRoundScenario
from trust_match.store import PostgresStore

TWO_PLACES = Decimal("0.01")


def print_dashboard(trust_id: str, entries: list[DashboardEntry], stats: DashboardStats) -> None:
    """Print one trust's listing as a fixed-width table."""
    print("\n" + "=" * 100)
    print(
        f"Trust {trust_id}: pending={stats.pending} approved={stats.approved} "
        f"rejected={stats.rejected} total_approved={stats.total_approved}"
    )
    print("=" * 100)
    print(
        f"{'Score':>5}  {'Student':<24}{'Gender':<8}{'Course':<32}{'City':<14}"
        f"{'LPA':>8}{'Acad':>8}{'Requested':>12}"
    )
    for entry in entries:
        print(
            f"{entry.match_score:>5}  {entry.student_name[:23]:<24}{entry.gender:<8}"
            f"{entry.course_name[:31]:<32}{entry.city[:13]:<14}"
            f"{entry.total_family_income_lpa.quantize(TWO_PLACES):>8}"
            f"{entry.weighted_academic_score.quantize(TWO_PLACES):>8}"
            f"{entry.total_amount_requested:>12}"
        )
    if not entries:
        print("  (no applications)")


def main() -> None:
    """Main entry point."""
    config = TrustMatchConfig.from_env()

    parser = argparse.ArgumentParser(description="Print ranked trust dashboards")
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="Read from this PostgreSQL database instead of generating a round",
    )
    parser.add_argument(
        "--trust-id",
        action="append",
        default=None,
        help="Trust to show (repeatable; required with --postgres-url)",
    )
    parser.add_argument(
        "--view",
        choices=[mode.value for mode in ViewMode],
        default=config.matching.default_view,
        help="filtered: perfect matches only; all: every application (default: filtered)",
    )
    parser.add_argument(
        "--tab",
        choices=[tab.value for tab in StatusTab],
        default=StatusTab.PENDING.value,
        help="Dashboard tab (default: pending)",
    )
    parser.add_argument(
        "--no-score-ranking",
        action="store_true",
        help="In 'all' view, order by income and submission time only",
    )
    parser.add_argument(
        "--applications",
        type=int,
        default=50,
        help="Applications to generate when not using PostgreSQL (default: 50)",
    )
    parser.add_argument(
        "--trusts",
        type=int,
        default=3,
        help="Trusts to generate when not using PostgreSQL (default: 3)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.seed if config.seed is not None else 42,
        help="Random seed for reproducibility (default: 42)",
    )
    args = parser.parse_args()

    setup_logging(config.log_level, config.log_format)

    if args.postgres_url:
        if not args.trust_id:
            parser.error("--trust-id is required with --postgres-url")
        store = PostgresStore(
            args.postgres_url,
            lock_timeout_ms=config.postgres.lock_timeout_ms,
            statement_timeout_ms=config.postgres.statement_timeout_ms,
        )
        trust_ids = args.trust_id
    else:
        scenario = FundingRoundScenario(
            num_applications=args.applications,
            num_trusts=args.trusts,
            decision_rate=0.1,
            seed=args.seed,
            lock_timeout=config.matching.approval_lock_timeout_seconds,
        )
        store = scenario.generate()
        trust_ids = args.trust_id or scenario.trust_ids

    dashboard = TrustDashboard(store, default_view=args.view)
    for trust_id in trust_ids:
        try:
            entries = dashboard.applications(
                trust_id,
                status_tab=args.tab,
                rank_by_score=not args.no_score_ranking,
            )
            stats = dashboard.stats(trust_id)
        except TrustMatchError:
            get_logger(__name__, trust_id=trust_id).exception("Failed to build dashboard")
            sys.exit(1)
        print_dashboard(trust_id, entries, stats)


if __name__ == "__main__":
    main()
