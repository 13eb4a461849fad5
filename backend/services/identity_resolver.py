"""Identity resolution for ETF feed records.

Every record from a listing feed is given *some* stable identifier: the
feed's own ISIN when it is usable, otherwise an ISIN returned by the
enrichment feed, otherwise a deterministic temporary identifier built from
the ticker and venue.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from integrations.exceptions import ProviderError
from integrations.feed_protocol import (
    EnrichmentFeed,
    EnrichmentRequest,
    EnrichmentResult,
    ListingRecord,
)
from utils.identifiers import generate_temporary_isin, is_valid_isin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedIdentity:
    """The identifier and name a feed record will be cataloged under."""

    isin: str
    name: str
    isin_temporary: bool
    enriched: bool = False


@dataclass
class EnrichmentOutcome:
    """Per-record enrichment results for one batch, aligned by index."""

    results: list[Optional[EnrichmentResult]] = field(default_factory=list)
    error: Optional[str] = None  # Set when the whole lookup failed

    def result_for(self, index: int) -> Optional[EnrichmentResult]:
        if index < len(self.results):
            return self.results[index]
        return None


def resolve_identity(
    record: ListingRecord,
    mic: str,
    enrichment: Optional[EnrichmentResult] = None,
) -> ResolvedIdentity:
    """Resolve a feed record to (isin, name, isin_temporary).

    1. A well-formed ISIN from the listing feed is used as-is.
    2. Otherwise a well-formed ISIN from a successful enrichment lookup.
    3. Otherwise ``TEMP-<ticker>-<mic>``.

    A name from a successful enrichment lookup replaces the feed's name.
    """
    enriched = enrichment is not None and enrichment.success
    name = record.name
    if enriched and enrichment.name:
        name = enrichment.name
    name = (name or "").strip() or record.ticker

    feed_isin = (record.isin or "").strip().upper()
    if is_valid_isin(feed_isin):
        return ResolvedIdentity(feed_isin, name, False, enriched)

    if enriched:
        looked_up = (enrichment.isin or "").strip().upper()
        if is_valid_isin(looked_up):
            return ResolvedIdentity(looked_up, name, False, True)

    return ResolvedIdentity(
        generate_temporary_isin(record.ticker, mic), name, True, enriched
    )


class IdentityResolver:
    """Batches enrichment lookups for one venue's records."""

    def __init__(self, enrichment_feed: Optional[EnrichmentFeed] = None):
        self._feed = enrichment_feed

    def enrich(self, records: list[ListingRecord], mic: str) -> EnrichmentOutcome:
        """Look up every record without a usable ISIN in one batched call.

        Records that already carry a valid ISIN are not sent. Feed failures
        are non-fatal: the outcome has no results for the batch and carries
        the error message.
        """
        outcome = EnrichmentOutcome(results=[None] * len(records))
        if self._feed is None:
            return outcome

        pending = [
            (index, record)
            for index, record in enumerate(records)
            if not is_valid_isin((record.isin or "").strip().upper())
        ]
        if not pending:
            return outcome

        requests = [
            EnrichmentRequest(ticker=r.ticker, mic=mic, currency=r.currency or None)
            for _, r in pending
        ]
        try:
            results = self._feed.lookup(requests)
        except ProviderError as exc:
            logger.warning(
                "Enrichment via %s failed for %d records on %s: %s",
                self._feed.provider_name, len(requests), mic, exc,
            )
            outcome.error = f"{mic}: enrichment failed: {exc}"
            return outcome
        except Exception as exc:
            logger.error(
                "Unexpected error enriching %d records on %s via %s: %s",
                len(requests), mic, self._feed.provider_name, exc, exc_info=True,
            )
            outcome.error = f"{mic}: enrichment failed: {exc}"
            return outcome

        if len(results) != len(requests):
            logger.warning(
                "Enrichment via %s returned %d results for %d requests on %s",
                self._feed.provider_name, len(results), len(requests), mic,
            )
            outcome.error = f"{mic}: enrichment returned a misaligned batch"
            return outcome

        for (index, _), result in zip(pending, results):
            outcome.results[index] = result

        matched = sum(1 for r in results if r.success)
        logger.debug("Enrichment for %s: %d/%d matched", mic, matched, len(requests))
        return outcome
