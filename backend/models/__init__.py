"""SQLAlchemy ORM models."""

from .exchange import Exchange
from .instrument import Instrument, NameSource
from .listing import Listing, ListingStatus
from .portfolio import Portfolio
from .transaction import Transaction, TransactionType
from .utils import generate_uuid

__all__ = ["Exchange", "Instrument", "Listing", "ListingStatus", "NameSource", "Portfolio", "Transaction", "TransactionType", "generate_uuid"]
