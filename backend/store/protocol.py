"""Store protocol definition.

The catalog, ledger and sync services read and write through this
interface rather than a concrete database. Implementations must give
per-key atomicity: instrument upserts are atomic per identifier and
listing upserts per (identifier, exchange) key. The services do not
implement their own locking on top of that, except where the ledger
serializes SELL validation per (portfolio, listing).
"""

from contextlib import AbstractContextManager
from typing import Iterable, Protocol

from models import Exchange, Instrument, Listing, Portfolio, Transaction
from schemas.transaction import TransactionFilters


class Store(Protocol):
    """Read/write access to exchanges, catalog entries, portfolios and transactions."""

    # --- Exchanges (reference data) ---

    def get_exchange(self, exchange_id: str) -> Exchange | None: ...

    def get_exchange_by_mic(self, mic: str) -> Exchange | None: ...

    def list_exchanges(self) -> list[Exchange]: ...

    def put_exchange(self, exchange: Exchange) -> Exchange: ...

    # --- Catalog ---

    def get_instrument(self, isin: str) -> Instrument | None: ...

    def put_instrument(self, instrument: Instrument) -> Instrument: ...

    def get_listing(self, isin: str, exchange_id: str) -> Listing | None: ...

    def get_listing_by_id(self, listing_id: str) -> Listing | None: ...

    def get_listings_for_instrument(self, isin: str) -> list[Listing]: ...

    def search_listings(
        self,
        search: str | None,
        exchange_id: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Listing], int]: ...

    def put_listing(self, listing: Listing) -> Listing: ...

    # --- Portfolios ---

    def get_portfolio(self, portfolio_id: str) -> Portfolio | None: ...

    def get_portfolio_for_user(self, user_id: str) -> Portfolio | None: ...

    def put_portfolio(self, portfolio: Portfolio) -> Portfolio: ...

    # --- Transactions ---

    def get_transaction(self, transaction_id: str) -> Transaction | None: ...

    def query_transactions(
        self,
        portfolio_id: str,
        filters: TransactionFilters | None = None,
        ascending: bool = False,
    ) -> Iterable[Transaction]:
        """Return transactions for a portfolio, ordered by date.

        ``filters`` limits by listing, type and date range and applies its
        ``limit``/``offset``; with ``filters=None`` the full history is
        returned unpaginated.
        """
        ...

    def query_position_history(self, portfolio_id: str, listing_id: str) -> list[Transaction]:
        """Return every transaction of one (portfolio, listing) pair, oldest first."""
        ...

    def count_transactions(
        self, portfolio_id: str, filters: TransactionFilters | None = None
    ) -> int: ...

    def put_transaction(self, transaction: Transaction) -> Transaction: ...

    def delete_transaction(self, transaction: Transaction) -> None: ...

    # --- Unit of work ---

    def atomic(self) -> AbstractContextManager:
        """Scope a group of writes so a failure undoes only that group."""
        ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
