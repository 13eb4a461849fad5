"""Mock implementations for external services."""

from decimal import Decimal

from integrations.exceptions import ProviderConnectionError
from integrations.feed_protocol import (
    EnrichmentRequest,
    EnrichmentResult,
    ListingRecord,
)
from models import NameSource


class MockListingFeed:
    """Mock listing feed for testing.

    ``listings`` maps MIC -> records; ``failing_mics`` raise a connection
    error instead. Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        listings: dict[str, list[ListingRecord]] | None = None,
        failing_mics: set[str] | None = None,
        name: str = "MockFeed",
        name_source: NameSource = NameSource.FALLBACK,
    ):
        self._listings = listings or {}
        self._failing_mics = failing_mics or set()
        self._name = name
        self._name_source = name_source
        self.calls: list[str] = []

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def name_source(self) -> NameSource:
        return self._name_source

    def fetch_listings(self, mic: str) -> list[ListingRecord]:
        self.calls.append(mic)
        if mic in self._failing_mics:
            raise ProviderConnectionError(f"{mic} unreachable", provider_name=self._name)
        return list(self._listings.get(mic, []))


class MockEnrichmentFeed:
    """Mock enrichment feed keyed by (ticker, mic).

    Unknown pairs come back as unsuccessful results. With ``should_fail``
    every lookup raises a connection error.
    """

    def __init__(
        self,
        matches: dict[tuple[str, str], EnrichmentResult] | None = None,
        should_fail: bool = False,
    ):
        self._matches = matches or {}
        self._should_fail = should_fail
        self.batches: list[list[EnrichmentRequest]] = []

    @property
    def provider_name(self) -> str:
        return "MockEnrichment"

    def lookup(self, requests: list[EnrichmentRequest]) -> list[EnrichmentResult]:
        self.batches.append(list(requests))
        if self._should_fail:
            raise ProviderConnectionError("enrichment unreachable", provider_name="MockEnrichment")
        return [
            self._matches.get(
                (r.ticker, r.mic),
                EnrichmentResult(ticker=r.ticker, mic=r.mic, success=False, error="No match"),
            )
            for r in requests
        ]


class MockPriceProvider:
    """Fixed prices keyed by listing id."""

    def __init__(self, prices: dict[str, Decimal] | None = None):
        self._prices = prices or {}

    def price_of(self, listing_id: str) -> Decimal | None:
        return self._prices.get(listing_id)


# Sample data

SAMPLE_LISTINGS: dict[str, list[ListingRecord]] = {
    "XETR": [
        ListingRecord(
            ticker="EUNL",
            name="iShares Core MSCI World",
            currency="EUR",
            isin="IE00B4L5Y983",
            mic="XETR",
        ),
        ListingRecord(
            ticker="VWCE",
            name="Vanguard FTSE All-World",
            currency="EUR",
            isin="request_access_via_add_ons",
            mic="XETR",
        ),
        ListingRecord(ticker="XDWD", name="Xtrackers MSCI World", currency="EUR", mic="XETR"),
        ListingRecord(ticker="", name="No ticker", currency="EUR", mic="XETR"),
    ],
    "XLON": [
        ListingRecord(
            ticker="SWDA",
            name="iShares Core MSCI World",
            currency="GBP",
            isin="IE00B4L5Y983",
            mic="XLON",
        ),
    ],
}

SAMPLE_ENRICHMENT: dict[tuple[str, str], EnrichmentResult] = {
    ("VWCE", "XETR"): EnrichmentResult(
        ticker="VWCE",
        mic="XETR",
        success=True,
        figi="BBG00NRFQ4M2",
        name="VANGUARD FTSE ALL-WORLD UCITS ETF",
    ),
}
