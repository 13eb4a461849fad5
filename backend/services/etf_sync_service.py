"""ETF catalog sync - listing feed + enrichment feed -> instrument catalog.

For each venue: fetch the venue's ETFs from the listing feed, enrich them
in bounded batches, resolve each record to an identifier and upsert the
instrument and listing. Failures are recorded in the run statistics and
never abort the run.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from config import settings
from errors import AppError, ValidationError
from integrations.feed_protocol import EnrichmentFeed, ListingFeed, ListingRecord
from models import Exchange
from services.catalog_service import CatalogService, NameUpdate
from services.identity_resolver import EnrichmentOutcome, IdentityResolver, resolve_identity
from store import Store

logger = logging.getLogger(__name__)


@dataclass
class EtfSyncConfig:
    """Parameters for one sync run."""

    rate_limit: int = 60  # listing feed requests per minute
    exchanges: Optional[list[str]] = None  # MICs to sync; None means all known venues
    batch_size: int = 100  # records per enrichment batch

    def __post_init__(self):
        if self.rate_limit <= 0:
            raise ValueError(f"rate_limit must be positive, got {self.rate_limit}")
        if not 1 <= self.batch_size <= 100:
            raise ValueError(f"batch_size must be between 1 and 100, got {self.batch_size}")

    @property
    def delay_seconds(self) -> float:
        """Pause between venue fetches."""
        return 60.0 / self.rate_limit

    @classmethod
    def from_settings(cls, exchanges: Optional[list[str]] = None) -> "EtfSyncConfig":
        return cls(
            rate_limit=settings.ETF_SYNC_RATE_LIMIT,
            exchanges=exchanges,
            batch_size=settings.ETF_SYNC_BATCH_SIZE,
        )


@dataclass
class EtfSyncStats:
    """Counters accumulated by a single sync run."""

    total_etfs: int = 0
    created_instruments: int = 0
    updated_instruments: int = 0
    created_listings: int = 0
    updated_listings: int = 0
    enriched: int = 0
    temporary_isins: int = 0
    skipped: int = 0  # records without a ticker
    errors: int = 0
    error_messages: list[str] = field(default_factory=list)
    processed_exchanges: list[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    max_error_messages: int = 10

    def record_error(self, message: str) -> None:
        """Count an error; only the first ``max_error_messages`` texts are kept."""
        self.errors += 1
        if len(self.error_messages) < self.max_error_messages:
            self.error_messages.append(message)

    def to_dict(self) -> dict:
        return {
            "total_etfs": self.total_etfs,
            "created_instruments": self.created_instruments,
            "updated_instruments": self.updated_instruments,
            "created_listings": self.created_listings,
            "updated_listings": self.updated_listings,
            "enriched": self.enriched,
            "temporary_isins": self.temporary_isins,
            "skipped": self.skipped,
            "errors": self.errors,
            "error_messages": list(self.error_messages),
            "processed_exchanges": list(self.processed_exchanges),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


class EtfSyncService:
    """Runs ETF catalog syncs against injected listing and enrichment feeds."""

    # Class-level lock shared across all instances to prevent concurrent syncs.
    # Per-key atomicity in the store makes overlapping runs safe, but they
    # would double the load on the feeds.
    _sync_lock = threading.Lock()

    def __init__(
        self,
        listing_feed: ListingFeed,
        enrichment_feed: Optional[EnrichmentFeed] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._listing_feed = listing_feed
        self._resolver = IdentityResolver(enrichment_feed)
        self._sleep = sleep

    @classmethod
    def is_sync_in_progress(cls) -> bool:
        """Check if a sync run is currently in progress."""
        acquired = cls._sync_lock.acquire(blocking=False)
        if acquired:
            cls._sync_lock.release()
            return False
        return True

    def sync(self, store: Store, config: Optional[EtfSyncConfig] = None) -> EtfSyncStats:
        """Sync ETFs for every configured venue.

        Args:
            store: Persistence store; committed once per venue
            config: Run parameters, defaults from settings

        Returns:
            Statistics for the run, including partial failures

        Raises:
            AppError: ``SYNC_IN_PROGRESS`` if another run holds the lock
        """
        config = config or EtfSyncConfig.from_settings()

        acquired = self._sync_lock.acquire(blocking=False)
        if not acquired:
            logger.warning("ETF sync blocked: another sync is already in progress")
            raise AppError("ETF sync already in progress", "SYNC_IN_PROGRESS", 409)

        stats = EtfSyncStats(
            started_at=datetime.now(timezone.utc),
            max_error_messages=settings.ETF_SYNC_MAX_ERROR_MESSAGES,
        )
        try:
            venues = self._select_venues(store, config, stats)
            logger.info(
                "Starting ETF sync from %s: %d venues, %d req/min",
                self._listing_feed.provider_name, len(venues), config.rate_limit,
            )

            for i, exchange in enumerate(venues):
                self._sync_venue(store, exchange, config, stats)
                if i < len(venues) - 1:
                    logger.debug("Waiting %.1fs before next venue", config.delay_seconds)
                    self._sleep(config.delay_seconds)

            stats.completed_at = datetime.now(timezone.utc)
            logger.info(
                "ETF sync complete: %d ETFs, %d/%d instruments created/updated, "
                "%d/%d listings created/updated, %d temporary ISINs, %d enriched, "
                "%d skipped, %d errors",
                stats.total_etfs,
                stats.created_instruments, stats.updated_instruments,
                stats.created_listings, stats.updated_listings,
                stats.temporary_isins, stats.enriched, stats.skipped, stats.errors,
            )
            return stats
        finally:
            self._sync_lock.release()

    @staticmethod
    def _select_venues(
        store: Store, config: EtfSyncConfig, stats: EtfSyncStats
    ) -> list[Exchange]:
        exchanges = store.list_exchanges()
        if not config.exchanges:
            return exchanges

        known = {e.mic: e for e in exchanges}
        selected = []
        for mic in config.exchanges:
            if mic in known:
                selected.append(known[mic])
            else:
                logger.warning("Exchange %s not found, skipping", mic)
                stats.record_error(f"Exchange {mic} not found")
        return selected

    def _sync_venue(
        self,
        store: Store,
        exchange: Exchange,
        config: EtfSyncConfig,
        stats: EtfSyncStats,
    ) -> None:
        """Fetch and upsert one venue; a fetch failure is recorded once."""
        mic = exchange.mic
        try:
            records = self._listing_feed.fetch_listings(mic)
        except AppError as e:
            logger.error("Failed to fetch ETFs for %s: %s", mic, e)
            stats.record_error(f"{mic}: {e}")
            return
        except Exception as e:
            logger.error("Unexpected error fetching ETFs for %s: %s", mic, e, exc_info=True)
            stats.record_error(f"{mic}: {e}")
            return

        valid = [r for r in records if r.ticker]
        skipped = len(records) - len(valid)
        if skipped:
            logger.info("%s: skipping %d records without ticker", mic, skipped)
            stats.total_etfs += skipped
            stats.skipped += skipped

        for start in range(0, len(valid), config.batch_size):
            batch = valid[start:start + config.batch_size]
            outcome = self._resolver.enrich(batch, mic)
            if outcome.error:
                stats.record_error(outcome.error)
            for index, record in enumerate(batch):
                self._process_record(store, exchange, record, outcome, index, stats)

        store.commit()
        stats.processed_exchanges.append(mic)
        logger.info("%s: processed %d ETFs", mic, len(valid))

    def _process_record(
        self,
        store: Store,
        exchange: Exchange,
        record: ListingRecord,
        outcome: EnrichmentOutcome,
        index: int,
        stats: EtfSyncStats,
    ) -> None:
        stats.total_etfs += 1
        enrichment = outcome.result_for(index)

        try:
            identity = resolve_identity(record, exchange.mic, enrichment)
            if not (record.currency or "").strip():
                raise ValidationError(
                    "missing trading currency", {"currency": "Trading currency is required"}
                )
            with store.atomic():
                _, decision = CatalogService.apply_instrument(
                    store,
                    identity.isin,
                    identity.name,
                    self._listing_feed.name_source,
                    identity.isin_temporary,
                )
                _, created = CatalogService.apply_listing(
                    store,
                    identity.isin,
                    exchange.id,
                    record.ticker,
                    record.currency,
                    self._listing_feed.provider_name,
                )
        except AppError as e:
            logger.warning("%s/%s: failed to upsert: %s", exchange.mic, record.ticker, e)
            stats.record_error(f"{record.ticker}: {e}")
            return
        except IntegrityError:
            raise
        except Exception as e:
            logger.error(
                "%s/%s: unexpected error: %s", exchange.mic, record.ticker, e, exc_info=True
            )
            stats.record_error(f"{record.ticker}: {e}")
            return

        if decision is NameUpdate.CREATE:
            stats.created_instruments += 1
        else:
            stats.updated_instruments += 1
        if created:
            stats.created_listings += 1
        else:
            stats.updated_listings += 1
        if identity.isin_temporary:
            stats.temporary_isins += 1
        if identity.enriched:
            stats.enriched += 1
