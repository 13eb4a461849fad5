"""Listing model - an instrument as traded on one exchange."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class ListingStatus(str, Enum):
    """Trading status of a listing."""

    ACTIVE = "ACTIVE"
    TERMINATED = "TERMINATED"
    CANCELLED = "CANCELLED"
    SUSPENDED = "SUSPENDED"


class Listing(Base):
    """One (instrument, exchange) pair.

    Created on the first sighting of the pair; ``last_seen_at`` is refreshed
    on every later sighting.
    """

    __tablename__ = "listings"
    __table_args__ = (
        UniqueConstraint("isin", "exchange_id", name="uix_listing_isin_exchange"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    isin = Column(
        String, ForeignKey("instruments.isin", ondelete="RESTRICT"), nullable=False, index=True
    )
    exchange_id = Column(String(36), ForeignKey("exchanges.id"), nullable=False, index=True)
    ticker = Column(String, nullable=True)
    trading_currency = Column(String(3), nullable=False)
    status = Column(String, nullable=False, default=ListingStatus.ACTIVE.value)
    source_system = Column(String, nullable=False, default="FALLBACK")
    first_seen_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    last_seen_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    instrument = relationship("Instrument", back_populates="listings")
    exchange = relationship("Exchange", back_populates="listings")
    transactions = relationship("Transaction", back_populates="listing")
