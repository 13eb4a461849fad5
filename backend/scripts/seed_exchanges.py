#!/usr/bin/env python
"""Seed the exchanges (trading venues) the ETF sync iterates over.

Creates any missing tables, then inserts each venue whose MIC is not
already present. Existing venues are left untouched.

Usage:
    python -m scripts.seed_exchanges
"""

from database import get_session_local, init_db
from models import Exchange
from store import SqlAlchemyStore

# (mic, name, country, currency, timezone)
EXCHANGES = [
    ("XETR", "Xetra", "DE", "EUR", "Europe/Berlin"),
    ("XLON", "London Stock Exchange", "GB", "GBP", "Europe/London"),
    ("XAMS", "Euronext Amsterdam", "NL", "EUR", "Europe/Amsterdam"),
    ("XPAR", "Euronext Paris", "FR", "EUR", "Europe/Paris"),
    ("XMIL", "Borsa Italiana", "IT", "EUR", "Europe/Rome"),
    ("XSWX", "SIX Swiss Exchange", "CH", "CHF", "Europe/Zurich"),
    ("XNYS", "New York Stock Exchange", "US", "USD", "America/New_York"),
    ("XNAS", "Nasdaq", "US", "USD", "America/New_York"),
    ("XWAR", "Warsaw Stock Exchange", "PL", "PLN", "Europe/Warsaw"),
]


def seed_exchanges(store) -> tuple[int, int]:
    """Insert missing venues.

    Returns:
        (created, skipped) counts
    """
    created = 0
    skipped = 0
    for mic, name, country, currency, tz in EXCHANGES:
        if store.get_exchange_by_mic(mic) is not None:
            skipped += 1
            continue
        store.put_exchange(
            Exchange(mic=mic, name=name, country=country, currency=currency, timezone=tz)
        )
        created += 1
        print(f"✓ Created exchange {mic} ({name})")
    return created, skipped


def main() -> None:
    init_db()
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        created, skipped = seed_exchanges(SqlAlchemyStore(db))
        db.commit()

        print("\nSummary:")
        print(f"  Created: {created}")
        print(f"  Skipped (already existed): {skipped}")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
