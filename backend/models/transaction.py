"""Transaction model - one BUY or SELL ledger entry."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Transaction(Base):
    """A ledger entry. ``total_amount`` is always ``quantity * price_per_unit + fees``.

    Deletion is permanent; there is no soft-delete.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transaction_quantity_positive"),
        CheckConstraint("price_per_unit > 0", name="ck_transaction_price_positive"),
        CheckConstraint("fees >= 0", name="ck_transaction_fees_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    portfolio_id = Column(
        String(36), ForeignKey("portfolios.id", ondelete="CASCADE"), nullable=False, index=True
    )
    listing_id = Column(String(36), ForeignKey("listings.id"), nullable=False, index=True)
    type = Column(String, nullable=False)  # "BUY" | "SELL"
    date = Column(Date, nullable=False)
    quantity = Column(Numeric(18, 8), nullable=False)
    price_per_unit = Column(Numeric(18, 6), nullable=False)
    total_amount = Column(Numeric(18, 6), nullable=False)
    currency = Column(String(3), nullable=False)
    fees = Column(Numeric(18, 6), nullable=False, default=Decimal("0"))
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    portfolio = relationship("Portfolio", back_populates="transactions")
    listing = relationship("Listing", back_populates="transactions")
