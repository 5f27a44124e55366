#!/usr/bin/env python3
"""Generate a sample funding round.

Writes applications, trusts and first-wave approvals as JSON files to the
output directory and, with --postgres-url, loads them into PostgreSQL.
Approval audit events go to the sink chosen with --events.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from trust_match.config import TrustMatchConfig
from trust_match.exceptions import TrustMatchError
from trust_match.logging import get_logger, setup_logging
from trust_match.scenarios import FundingRoundScenario
from trust_match.sinks import ConsoleSink, JsonFileSink, KafkaSink
from trust_match.sinks.kafka import ProducerConfig
from trust_match.store import InMemoryStore, PostgresStore

logger = get_logger(__name__)


def load_to_postgres(store: InMemoryStore, trust_ids: list[str], postgres_url: str) -> None:
    """Copy a generated funding round into PostgreSQL.

    Applications are inserted with their aggregates as generated, then
    the approvals are inserted and statuses reconciled.
    """
    pg = PostgresStore(postgres_url)
    pg.create_tables()

    for trust_id in trust_ids:
        pg.add_trust(trust_id, store.get_preferences(trust_id))
    for application in store.list_applications():
        pg.add_application(application)
    for approval in store.approvals.values():
        pg.import_approval(approval)

    counts = pg.reconcile_statuses()
    logger.info(
        "Loaded %d applications, %d trusts, %d approvals to PostgreSQL (%s)",
        len(store.applications),
        len(trust_ids),
        len(store.approvals),
        counts,
    )


def main() -> None:
    """Main entry point."""
    config = TrustMatchConfig.from_env()

    parser = argparse.ArgumentParser(description="Generate a sample funding round")
    parser.add_argument(
        "--applications",
        type=int,
        default=50,
        help="Number of applications to generate (default: 50)",
    )
    parser.add_argument(
        "--trusts",
        type=int,
        default=5,
        help="Number of trusts to generate (default: 5)",
    )
    parser.add_argument(
        "--decision-rate",
        type=float,
        default=0.1,
        help="Probability that a trust decides on an application in the first wave (default: 0.1)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.seed if config.seed is not None else 42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=config.output.json_output_dir,
        help="Directory for JSON files (default: output)",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="Also load the round into this PostgreSQL database",
    )
    parser.add_argument(
        "--events",
        choices=["none", "console", "json", "kafka"],
        default="none",
        help="Where to publish first-wave audit events (default: none)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=config.log_level,
        help="Log level (default: INFO)",
    )
    args = parser.parse_args()

    setup_logging(args.log_level, config.log_format)

    event_sink = None
    if args.events == "console":
        event_sink = ConsoleSink(pretty=False)
    elif args.events == "json":
        event_sink = JsonFileSink(args.output_dir, pretty=False)
    elif args.events == "kafka":
        event_sink = KafkaSink(ProducerConfig.from_kafka_config(config.kafka))

    scenario = FundingRoundScenario(
        num_applications=args.applications,
        num_trusts=args.trusts,
        decision_rate=args.decision_rate,
        seed=args.seed,
        event_sink=event_sink,
        topic_prefix=config.kafka.topic_prefix,
        lock_timeout=config.matching.approval_lock_timeout_seconds,
    )

    try:
        store = scenario.generate()
        scenario.export([JsonFileSink(args.output_dir, pretty=config.output.pretty_json)])
        if args.postgres_url:
            load_to_postgres(store, scenario.trust_ids, args.postgres_url)
    except TrustMatchError:
        logger.exception("Sample generation failed")
        sys.exit(1)
    finally:
        if event_sink is not None:
            event_sink.close()

    print("\n" + "=" * 60)
    print("Summary")
    print("=" * 60)
    for name, count in store.summary().items():
        print(f"{name + ':':18}{count}")
    print(f"\nAll files saved to: {args.output_dir}")
    print("=" * 60)


if __name__ == "__main__":
    main()
