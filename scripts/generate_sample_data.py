#!/usr/bin/env python3
"""Generate sample ledger data.

Runs the household scenario through the card and expense services and
writes the result either to JSON files (default, under local/) or
directly into PostgreSQL. Ledger events can optionally be published to
Kafka while the scenario runs.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from card_ledger.config import AppConfig, KafkaConfig
from card_ledger.logging import get_logger, setup_logging
from card_ledger.scenarios import HouseholdScenario
from card_ledger.sinks import JsonFileSink
from card_ledger.sinks.kafka import KafkaSink
from card_ledger.store import InMemoryLedgerStore
from card_ledger.store.postgres import PostgresLedgerStore

logger = get_logger(__name__)


def export_json(store: InMemoryLedgerStore, output_dir: Path) -> None:
    """Write cards, expenses and ledger entries to JSON files."""
    sink = JsonFileSink(output_dir, pretty=True)
    sink.write_batch("credit_cards", list(store.cards.values()))
    sink.write_batch("expenses", list(store.expenses.values()))
    sink.write_batch("ledger_entries", store.entries)
    sink.close()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate sample card ledger data")
    parser.add_argument(
        "--owners",
        type=int,
        default=3,
        help="Number of owners to generate (default: 3)",
    )
    parser.add_argument(
        "--expenses-per-card",
        type=int,
        default=25,
        help="Expenses attempted per card (default: 25)",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=3,
        help="Months of history to spread expenses over (default: 3)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=project_root / "local",
        help="Directory for JSON output (default: local/)",
    )
    parser.add_argument(
        "--postgres",
        action="store_true",
        help="Write to PostgreSQL instead of JSON files",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="PostgreSQL connection string (default: from POSTGRES_* env vars)",
    )
    parser.add_argument(
        "--recreate",
        action="store_true",
        help="Drop and recreate the ledger tables before loading",
    )
    parser.add_argument(
        "--kafka-bootstrap",
        type=str,
        default=None,
        help="Publish ledger events to this Kafka cluster",
    )
    args = parser.parse_args()

    config = AppConfig.from_env()
    setup_logging(config.log_level, config.log_format)

    kafka_config = config.kafka
    if args.kafka_bootstrap:
        kafka_config = KafkaConfig(bootstrap_servers=args.kafka_bootstrap)
    event_sink = KafkaSink(kafka_config) if kafka_config else None

    if args.postgres:
        store = PostgresLedgerStore(args.postgres_url or config.postgres.connection_string)
        if args.recreate:
            store.drop_tables()
        store.create_tables()
    else:
        store = InMemoryLedgerStore()

    scenario = HouseholdScenario(
        num_owners=args.owners,
        expenses_per_card=args.expenses_per_card,
        months=args.months,
        store=store,
        event_sink=event_sink,
        config=config.ledger,
        seed=args.seed,
    )
    try:
        scenario.generate()
        summary = scenario.get_summary()
    finally:
        if event_sink is not None:
            event_sink.close()
        store.close()

    if not args.postgres:
        export_json(store, args.output_dir)

    for owner_id, owner in summary["owners"].items():
        logger.info(
            "%s: %d cards, balance %s of %s, reconciled=%s",
            owner_id,
            owner["cards"],
            owner["total_balance"],
            owner["total_limit"],
            owner["reconciled"],
        )
    if not all(owner["reconciled"] for owner in summary["owners"].values()):
        logger.error("Ledger reconciliation failed for at least one card")
        sys.exit(1)


if __name__ == "__main__":
    main()
