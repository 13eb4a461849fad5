"""Pydantic schemas for ledger transactions.

Fields carry no range constraints (no ``gt=0``); range
checks live in :mod:`services.transaction_validation` so every problem is
reported at once in the application's own ``ValidationError`` format.
"""

import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class NewListingSpec(BaseModel):
    """Listing to resolve or create when a transaction names no existing listing."""

    isin: str
    exchange_id: str
    ticker: str | None = None
    trading_currency: str
    instrument_name: str | None = None
    name_source: str | None = None  # NameSource value; defaults to FALLBACK
    classification: str | None = None


class TransactionCreate(BaseModel):
    """Schema for recording a new transaction.

    Exactly one of ``listing_id`` and ``listing`` must be given.
    """

    listing_id: str | None = None
    listing: NewListingSpec | None = None
    type: str
    date: datetime.date
    quantity: Decimal
    price_per_unit: Decimal
    currency: str
    fees: Decimal | None = None
    notes: str | None = None


class TransactionUpdate(BaseModel):
    """Schema for a partial transaction update; unset fields are left unchanged."""

    type: str | None = None
    date: datetime.date | None = None
    quantity: Decimal | None = None
    price_per_unit: Decimal | None = None
    currency: str | None = None
    fees: Decimal | None = None
    notes: str | None = None


class TransactionFilters(BaseModel):
    """Filters and pagination for listing a portfolio's transactions."""

    listing_id: str | None = None
    type: str | None = None
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class TransactionResponse(BaseModel):
    """Serialized transaction."""

    id: str
    portfolio_id: str
    listing_id: str
    type: str
    date: datetime.date
    quantity: Decimal
    price_per_unit: Decimal
    total_amount: Decimal
    currency: str
    fees: Decimal
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)
