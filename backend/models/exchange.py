"""Exchange model - static venue reference data."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Exchange(Base):
    """A trading venue, keyed by its ISO 10383 market identifier code."""

    __tablename__ = "exchanges"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    mic = Column(String(4), nullable=False, unique=True)
    name = Column(String, nullable=False)
    country = Column(String(2), nullable=False)
    currency = Column(String(3), nullable=False)
    timezone = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    listings = relationship("Listing", back_populates="exchange")
