"""Instrument catalog - canonical instruments and their exchange listings.

Instruments are merged from sources of differing authority. A stored name
is only replaced by a source of equal-or-higher priority; a same-priority
source that disagrees flags a conflict instead of overwriting. The merge
decision itself is the pure function :func:`decide_name_update`.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from errors import InvalidIdentifierError, NotFoundError, ValidationError
from models import Exchange, Instrument, Listing, ListingStatus, NameSource
from schemas.transaction import NewListingSpec
from store import Store
from utils.identifiers import is_temporary_isin, is_valid_isin

logger = logging.getLogger(__name__)

# Lower rank = more trusted
NAME_SOURCE_PRIORITY: dict[NameSource, int] = {
    NameSource.ESMA_FIRDS: 1,
    NameSource.FCA_FIRDS: 1,
    NameSource.SIX: 2,
    NameSource.FALLBACK: 3,
}


class NameUpdate(str, Enum):
    """What an instrument upsert does to the stored record."""

    CREATE = "create"
    OVERWRITE = "overwrite"
    FLAG_CONFLICT = "flag_conflict"
    REFRESH_ONLY = "refresh_only"


def name_source_rank(source: NameSource | str) -> int:
    """Return the priority rank of a name source (1 is highest).

    Raises:
        ValidationError: If ``source`` is not a known name source.
    """
    try:
        return NAME_SOURCE_PRIORITY[NameSource(source)]
    except ValueError:
        raise ValidationError(
            f"Unknown name source: {source}",
            {"name_source": f"Unknown name source: {source}"},
        ) from None


def decide_name_update(
    existing: Optional[Instrument],
    name: str,
    name_source: NameSource | str,
) -> NameUpdate:
    """Decide how an incoming (name, source) pair merges into ``existing``.

    - No record: CREATE.
    - Strictly higher priority than the stored source: OVERWRITE.
    - Same priority, different name: FLAG_CONFLICT (name kept).
    - Same priority and same name, or lower priority: REFRESH_ONLY.
    """
    if existing is None:
        return NameUpdate.CREATE

    new_rank = name_source_rank(name_source)
    stored_rank = name_source_rank(existing.name_source)

    if new_rank < stored_rank:
        return NameUpdate.OVERWRITE
    if new_rank == stored_rank and existing.name != name:
        return NameUpdate.FLAG_CONFLICT
    return NameUpdate.REFRESH_ONLY


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """Create-or-update operations on instruments and listings."""

    @staticmethod
    def apply_instrument(
        store: Store,
        isin: str,
        name: str,
        name_source: NameSource | str = NameSource.FALLBACK,
        isin_temporary: bool = False,
        classification: Optional[str] = None,
    ) -> tuple[Instrument, NameUpdate]:
        """Upsert an instrument and report which merge rule applied.

        Args:
            store: Persistence store
            isin: Permanent ISIN or temporary identifier
            name: Display name reported by the source (blank falls back to ``isin``)
            name_source: Provenance of ``name``
            isin_temporary: Whether ``isin`` was synthesized
            classification: Asset-class label; a non-empty value replaces the stored one

        Returns:
            The stored Instrument and the NameUpdate that was applied

        Raises:
            InvalidIdentifierError: If ``isin`` is empty
        """
        isin = (isin or "").strip()
        if not isin:
            raise InvalidIdentifierError("Instrument identifier is required")
        name = (name or "").strip() or isin
        name_source_rank(name_source)
        source = NameSource(name_source)
        classification = (classification or "").strip() or None

        existing = store.get_instrument(isin)
        decision = decide_name_update(existing, name, source)
        now = _now()

        if decision is NameUpdate.CREATE:
            instrument = Instrument(
                isin=isin,
                name=name,
                name_source=source.value,
                name_conflict=False,
                isin_temporary=isin_temporary,
                classification=classification,
                first_seen_at=now,
                last_seen_at=now,
            )
            store.put_instrument(instrument)
            logger.info("Created instrument: %s (%s, %s)", isin, name, source.value)
            return instrument, decision

        if decision is NameUpdate.OVERWRITE:
            logger.info(
                "Instrument %s renamed by %s: %r -> %r",
                isin, source.value, existing.name, name,
            )
            existing.name = name
            existing.name_source = source.value
            existing.isin_temporary = isin_temporary
        elif decision is NameUpdate.FLAG_CONFLICT:
            if not existing.name_conflict:
                logger.warning(
                    "Name conflict for %s from %s: stored %r, received %r",
                    isin, source.value, existing.name, name,
                )
            existing.name_conflict = True

        if classification is not None:
            existing.classification = classification
        existing.last_seen_at = now
        store.put_instrument(existing)
        return existing, decision

    @staticmethod
    def upsert_instrument(
        store: Store,
        isin: str,
        name: str,
        name_source: NameSource | str = NameSource.FALLBACK,
        isin_temporary: bool = False,
        classification: Optional[str] = None,
    ) -> Instrument:
        """Upsert an instrument following the name-source priority rules."""
        instrument, _ = CatalogService.apply_instrument(
            store, isin, name, name_source, isin_temporary, classification
        )
        return instrument

    @staticmethod
    def apply_listing(
        store: Store,
        isin: str,
        exchange_id: str,
        ticker: Optional[str],
        currency: str,
        source_system: str = NameSource.FALLBACK.value,
        status: ListingStatus | str = ListingStatus.ACTIVE,
    ) -> tuple[Listing, bool]:
        """Upsert the listing for (isin, exchange) and report whether it was created.

        Listing-level fields are last-write-wins: every sighting refreshes
        ticker, currency, source system, status and ``last_seen_at``. A
        sighting with ``ACTIVE`` status therefore revives a listing that
        was previously marked terminated.

        Raises:
            InvalidIdentifierError: If ``isin`` is empty
            ValidationError: If ``currency`` is empty
            NotFoundError: If the exchange or the parent instrument is unknown
        """
        isin = (isin or "").strip()
        if not isin:
            raise InvalidIdentifierError("Instrument identifier is required")
        currency = (currency or "").strip().upper()
        if not currency:
            raise ValidationError(
                "Trading currency is required",
                {"trading_currency": "Trading currency is required"},
            )
        if store.get_exchange(exchange_id) is None:
            raise NotFoundError(f"Exchange not found: {exchange_id}")
        if store.get_instrument(isin) is None:
            raise NotFoundError(f"Instrument not found: {isin}")

        ticker = (ticker or "").strip() or None
        status_value = ListingStatus(status).value
        now = _now()

        listing = store.get_listing(isin, exchange_id)
        if listing is None:
            listing = Listing(
                isin=isin,
                exchange_id=exchange_id,
                ticker=ticker,
                trading_currency=currency,
                status=status_value,
                source_system=source_system,
                first_seen_at=now,
                last_seen_at=now,
            )
            store.put_listing(listing)
            logger.debug("Created listing: %s on %s (%s)", isin, exchange_id, ticker)
            return listing, True

        listing.ticker = ticker
        listing.trading_currency = currency
        listing.source_system = source_system
        listing.status = status_value
        listing.last_seen_at = now
        store.put_listing(listing)
        return listing, False

    @staticmethod
    def upsert_listing(
        store: Store,
        isin: str,
        exchange_id: str,
        ticker: Optional[str],
        currency: str,
        source_system: str = NameSource.FALLBACK.value,
        status: ListingStatus | str = ListingStatus.ACTIVE,
    ) -> Listing:
        """Create or refresh the listing for (isin, exchange)."""
        listing, _ = CatalogService.apply_listing(
            store, isin, exchange_id, ticker, currency, source_system, status
        )
        return listing

    @staticmethod
    def ensure_listing(store: Store, spec: NewListingSpec) -> Listing:
        """Resolve or create the instrument and listing described by ``spec``.

        Used when a transaction is recorded against a listing the catalog
        has not seen yet. The instrument goes through the same priority
        rules as feed data; without a name it is called ``ETF <ticker>``.

        Raises:
            ValidationError: If the listing data is incomplete or the identifier malformed
            NotFoundError: If the exchange is unknown
        """
        errors: dict[str, str] = {}
        isin = (spec.isin or "").strip()
        # Temporary ids embed the ticker verbatim
        if not is_temporary_isin(isin):
            isin = isin.upper()
        if not isin:
            errors["listing.isin"] = "ISIN is required"
        elif not (is_valid_isin(isin) or is_temporary_isin(isin)):
            errors["listing.isin"] = "ISIN must be 2 letters, 9 alphanumerics and a check digit"
        if not (spec.exchange_id or "").strip():
            errors["listing.exchange_id"] = "Exchange is required"
        if not (spec.trading_currency or "").strip():
            errors["listing.trading_currency"] = "Trading currency is required"
        if spec.name_source is not None and spec.name_source not in NameSource.__members__:
            errors["listing.name_source"] = f"Unknown name source: {spec.name_source}"
        if errors:
            raise ValidationError("Listing data is invalid", errors)

        name = spec.instrument_name or f"ETF {spec.ticker or isin}"
        CatalogService.upsert_instrument(
            store,
            isin,
            name,
            spec.name_source or NameSource.FALLBACK,
            isin_temporary=is_temporary_isin(isin),
            classification=spec.classification,
        )
        return CatalogService.upsert_listing(
            store,
            isin,
            spec.exchange_id,
            spec.ticker,
            spec.trading_currency,
        )

    # --- Queries ---

    @staticmethod
    def get_listing(store: Store, listing_id: str) -> Listing:
        """Get a listing by id.

        Raises:
            NotFoundError: If no such listing exists
        """
        listing = store.get_listing_by_id(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing not found: {listing_id}")
        return listing

    @staticmethod
    def search_listings(
        store: Store,
        search: Optional[str] = None,
        exchange_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Listing], int]:
        """Search listings by ticker, ISIN or instrument name (case-insensitive).

        Returns:
            The requested page of listings and the total match count
        """
        return store.search_listings(search, exchange_id, max(1, limit), max(0, offset))

    @staticmethod
    def get_listings_for_isin(store: Store, isin: str) -> list[Listing]:
        """Get every listing of one instrument across exchanges."""
        return store.get_listings_for_instrument(isin)

    @staticmethod
    def list_exchanges(store: Store) -> list[Exchange]:
        return store.list_exchanges()

    @staticmethod
    def get_exchange_by_mic(store: Store, mic: str) -> Exchange:
        """Get an exchange by MIC.

        Raises:
            NotFoundError: If the MIC is unknown
        """
        exchange = store.get_exchange_by_mic(mic)
        if exchange is None:
            raise NotFoundError(f"Exchange not found: {mic}")
        return exchange
