"""Data feed protocol definitions.

Defines the normalized records and client interfaces for the external
feeds the ETF sync consumes: a primary listing feed (which ETFs trade on
a venue) and an identifier enrichment feed (which permanent identifier
and canonical name belong to a ticker). Price lookups are a separate
protocol consulted by the portfolio read model.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from models.instrument import NameSource


@dataclass
class ListingRecord:
    """Normalized ETF listing from a primary listing feed.

    All listing feed clients must map their payloads to this format.
    """

    ticker: str
    name: str
    currency: str
    isin: str | None = None  # Permanent identifier, when the feed exposes one
    mic: str | None = None
    country: str | None = None
    figi: str | None = None
    raw_data: dict | None = None  # Raw feed row for debugging


@dataclass
class EnrichmentRequest:
    """One identifier lookup, keyed by (ticker, venue, currency)."""

    ticker: str
    mic: str
    currency: str | None = None


@dataclass
class EnrichmentResult:
    """Outcome of one enrichment lookup.

    Results are returned aligned by index with the requests that produced
    them; ``success`` is False when the feed had no match or failed.
    """

    ticker: str
    mic: str
    success: bool
    isin: str | None = None
    figi: str | None = None
    name: str | None = None
    error: str | None = None


class ListingFeed(Protocol):
    """Protocol for primary listing feeds (e.g. Twelve Data)."""

    @property
    def provider_name(self) -> str:
        """Return the feed name; stored as the listing's source system."""
        ...

    @property
    def name_source(self) -> NameSource:
        """Return the provenance rank to record for names from this feed."""
        ...

    def fetch_listings(self, mic: str) -> list[ListingRecord]:
        """Fetch every ETF listed on the venue identified by ``mic``.

        Raises:
            ProviderError: If the feed is unreachable or rejects the request.
        """
        ...


class EnrichmentFeed(Protocol):
    """Protocol for identifier enrichment feeds (e.g. OpenFIGI)."""

    @property
    def provider_name(self) -> str:
        ...

    def lookup(self, requests: list[EnrichmentRequest]) -> list[EnrichmentResult]:
        """Resolve a batch of tickers.

        Returns exactly one result per request, in request order.
        """
        ...


class PriceProvider(Protocol):
    """Source of current prices, keyed by listing id."""

    def price_of(self, listing_id: str) -> Decimal | None:
        """Return the current price for a listing, or None if unknown."""
        ...
