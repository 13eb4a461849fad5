"""Test fixtures and sample data."""
import pytest
from datetime import date
from decimal import Decimal

from models import Exchange, Instrument, Listing, NameSource, Portfolio, Transaction
from sqlalchemy.orm import Session


def create_exchange(db: Session, mic: str, currency: str = "EUR", country: str = "DE") -> Exchange:
    """Create an exchange with a placeholder name.

    This is a helper function (not a fixture) for tests that need venues
    beyond the default ``exchange`` fixture.
    """
    exchange = Exchange(mic=mic, name=f"Exchange {mic}", country=country, currency=currency)
    db.add(exchange)
    db.flush()
    return exchange


def add_transaction(
    db: Session,
    portfolio: Portfolio,
    listing: Listing,
    type: str,
    quantity: str,
    price: str,
    on: date,
    fees: str = "0",
    currency: str = "EUR",
) -> Transaction:
    """Insert a transaction directly, bypassing ledger validation."""
    qty = Decimal(quantity)
    unit_price = Decimal(price)
    fee = Decimal(fees)
    tx = Transaction(
        portfolio_id=portfolio.id,
        listing_id=listing.id,
        type=type,
        date=on,
        quantity=qty,
        price_per_unit=unit_price,
        total_amount=qty * unit_price + fee,
        currency=currency,
        fees=fee,
    )
    db.add(tx)
    db.flush()
    return tx


@pytest.fixture
def exchange(db: Session) -> Exchange:
    """Create Xetra."""
    exchange = Exchange(
        mic="XETR",
        name="Xetra",
        country="DE",
        currency="EUR",
        timezone="Europe/Berlin",
    )
    db.add(exchange)
    db.commit()
    db.refresh(exchange)
    return exchange


@pytest.fixture
def instrument(db: Session) -> Instrument:
    """Create an instrument named by a registry source."""
    instrument = Instrument(
        isin="IE00B4L5Y983",
        name="iShares Core MSCI World UCITS ETF",
        name_source=NameSource.ESMA_FIRDS.value,
        isin_temporary=False,
    )
    db.add(instrument)
    db.commit()
    db.refresh(instrument)
    return instrument


@pytest.fixture
def listing(db: Session, instrument: Instrument, exchange: Exchange) -> Listing:
    """Create the Xetra listing of the sample instrument."""
    listing = Listing(
        isin=instrument.isin,
        exchange_id=exchange.id,
        ticker="EUNL",
        trading_currency="EUR",
        source_system="TwelveData",
    )
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing


@pytest.fixture
def other_listing(db: Session, exchange: Exchange) -> Listing:
    """Create a second instrument and its Xetra listing."""
    other = Instrument(
        isin="IE00BK5BQT80",
        name="Vanguard FTSE All-World UCITS ETF",
        name_source=NameSource.ESMA_FIRDS.value,
    )
    db.add(other)
    db.flush()
    listing = Listing(
        isin=other.isin,
        exchange_id=exchange.id,
        ticker="VWCE",
        trading_currency="EUR",
        source_system="TwelveData",
    )
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing


@pytest.fixture
def portfolio(db: Session) -> Portfolio:
    """Create the portfolio of user-1."""
    portfolio = Portfolio(user_id="user-1", name="My Portfolio")
    db.add(portfolio)
    db.commit()
    db.refresh(portfolio)
    return portfolio
