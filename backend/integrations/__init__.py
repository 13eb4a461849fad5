"""External data feed integrations.

This package contains:
- Feed protocol: normalized records and the listing/enrichment/price interfaces
- Twelve Data client: primary ETF listing feed
- OpenFIGI client: ticker -> FIGI/name enrichment feed
"""

from integrations.feed_protocol import (
    EnrichmentFeed,
    EnrichmentRequest,
    EnrichmentResult,
    ListingFeed,
    ListingRecord,
    PriceProvider,
)

__all__ = [
    "EnrichmentFeed",
    "EnrichmentRequest",
    "EnrichmentResult",
    "ListingFeed",
    "ListingRecord",
    "PriceProvider",
]
