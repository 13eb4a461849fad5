#!/usr/bin/env python
"""Run an ETF catalog sync from Twelve Data, enriched via OpenFIGI.

Usage:
    python -m scripts.run_etf_sync
    python -m scripts.run_etf_sync --exchange XETR --exchange XLON
    python -m scripts.run_etf_sync --rate-limit 8 --batch-size 50
    python -m scripts.run_etf_sync --no-enrichment
"""

import argparse
import json
import sys

from config import settings
from database import get_session_local
from errors import AppError
from integrations.openfigi_client import OpenFIGIClient
from integrations.twelve_data_client import TwelveDataClient
from logging_config import setup_logging
from services.etf_sync_service import EtfSyncConfig, EtfSyncService, EtfSyncStats
from store import SqlAlchemyStore


def print_stats(stats: EtfSyncStats) -> None:
    """Print a human-readable summary of a sync run."""
    print("\n" + "=" * 60)
    print("ETF sync complete")
    print("=" * 60)
    print(f"Exchanges processed:   {', '.join(stats.processed_exchanges) or '-'}")
    print(f"Total ETFs processed:  {stats.total_etfs}")
    print(f"Instruments created:   {stats.created_instruments}")
    print(f"Instruments updated:   {stats.updated_instruments}")
    print(f"Listings created:      {stats.created_listings}")
    print(f"Listings updated:      {stats.updated_listings}")
    print(f"Temporary ISINs:       {stats.temporary_isins}")
    print(f"Enriched:              {stats.enriched}")
    print(f"Skipped (no ticker):   {stats.skipped}")
    print(f"Errors:                {stats.errors}")

    if stats.error_messages:
        print("\nErrors:")
        for message in stats.error_messages:
            print(f"  - {message}")
        if stats.errors > len(stats.error_messages):
            print(f"  ... and {stats.errors - len(stats.error_messages)} more")

    if stats.temporary_isins:
        print(
            f"\n{stats.temporary_isins} ETFs have temporary ISINs (TEMP-<ticker>-<MIC>); "
            "they are replaced once a registry source supplies the real ISIN."
        )


def main(argv: list[str] | None = None) -> None:
    """Entry point: parse args and run the sync."""
    parser = argparse.ArgumentParser(description="Sync the ETF catalog from Twelve Data.")
    parser.add_argument(
        "--exchange",
        "-e",
        action="append",
        dest="exchanges",
        metavar="MIC",
        help="Exchange MIC to sync (repeatable); default is every seeded exchange",
    )
    parser.add_argument(
        "--rate-limit",
        type=int,
        default=settings.ETF_SYNC_RATE_LIMIT,
        help="Twelve Data requests per minute (default: %(default)s)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.ETF_SYNC_BATCH_SIZE,
        help="Records per OpenFIGI enrichment batch, 1-100 (default: %(default)s)",
    )
    parser.add_argument(
        "--no-enrichment",
        action="store_true",
        help="Skip OpenFIGI lookups",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the statistics as JSON",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Override LOG_LEVEL for this run",
    )
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    try:
        config = EtfSyncConfig(
            rate_limit=args.rate_limit,
            exchanges=args.exchanges,
            batch_size=args.batch_size,
        )
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(2)

    listing_feed = TwelveDataClient()
    enrichment_feed = None if args.no_enrichment else OpenFIGIClient()
    service = EtfSyncService(listing_feed, enrichment_feed)

    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        stats = service.sync(SqlAlchemyStore(db), config)
    except AppError as e:
        db.rollback()
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()
        listing_feed.close()
        if enrichment_feed is not None:
            enrichment_feed.close()

    if args.json:
        print(json.dumps(stats.to_dict(), indent=2))
    else:
        print_stats(stats)


if __name__ == "__main__":
    main()
