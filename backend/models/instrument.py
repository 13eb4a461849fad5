"""Instrument model - one canonical record per security (ISIN level)."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from database import Base


class NameSource(str, Enum):
    """Provenance of an instrument's display name.

    Ranked by :data:`services.catalog_service.NAME_SOURCE_PRIORITY`.
    """

    ESMA_FIRDS = "ESMA_FIRDS"
    FCA_FIRDS = "FCA_FIRDS"
    SIX = "SIX"
    FALLBACK = "FALLBACK"


class Instrument(Base):
    """A security independent of the venue it trades on.

    Keyed by ISIN, or by a ``TEMP-<ticker>-<mic>`` identifier until a
    registry-assigned ISIN is known. Never deleted.
    """

    __tablename__ = "instruments"

    isin = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    name_source = Column(String, nullable=False, default=NameSource.FALLBACK.value)
    name_conflict = Column(Boolean, nullable=False, default=False)
    isin_temporary = Column(Boolean, nullable=False, default=False)
    classification = Column(String, nullable=True)
    first_seen_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    last_seen_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    listings = relationship("Listing", back_populates="instrument")
