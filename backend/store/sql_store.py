"""SQLAlchemy implementation of the Store protocol."""

import logging
from contextlib import contextmanager

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from models import Exchange, Instrument, Listing, Portfolio, Transaction
from schemas.transaction import TransactionFilters

logger = logging.getLogger(__name__)


class SqlAlchemyStore:
    """Store backed by a SQLAlchemy session.

    Writes are flushed immediately so generated ids are available and
    constraint violations surface at the call site; committing is left to
    the caller (or to the services that own their transaction boundary).
    """

    def __init__(self, db: Session):
        self.db = db

    # --- Exchanges ---

    def get_exchange(self, exchange_id: str) -> Exchange | None:
        return self.db.get(Exchange, exchange_id)

    def get_exchange_by_mic(self, mic: str) -> Exchange | None:
        return self.db.query(Exchange).filter_by(mic=mic).first()

    def list_exchanges(self) -> list[Exchange]:
        return self.db.query(Exchange).order_by(Exchange.name.asc()).all()

    def put_exchange(self, exchange: Exchange) -> Exchange:
        self.db.add(exchange)
        self.db.flush()
        return exchange

    # --- Catalog ---

    def get_instrument(self, isin: str) -> Instrument | None:
        return self.db.get(Instrument, isin)

    def put_instrument(self, instrument: Instrument) -> Instrument:
        self.db.add(instrument)
        self.db.flush()
        return instrument

    def get_listing(self, isin: str, exchange_id: str) -> Listing | None:
        return (
            self.db.query(Listing)
            .filter_by(isin=isin, exchange_id=exchange_id)
            .first()
        )

    def get_listing_by_id(self, listing_id: str) -> Listing | None:
        return self.db.get(Listing, listing_id)

    def get_listings_for_instrument(self, isin: str) -> list[Listing]:
        return (
            self.db.query(Listing)
            .options(joinedload(Listing.exchange))
            .filter_by(isin=isin)
            .order_by(Listing.ticker.asc())
            .all()
        )

    def search_listings(
        self,
        search: str | None,
        exchange_id: str | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Listing], int]:
        query = self.db.query(Listing).join(Instrument, Listing.isin == Instrument.isin)
        if exchange_id:
            query = query.filter(Listing.exchange_id == exchange_id)
        if search and search.strip():
            term = search.strip()
            query = query.filter(
                or_(
                    Listing.ticker.ilike(f"%{term}%"),
                    Listing.isin.ilike(f"%{term}%"),
                    Instrument.name.ilike(f"%{term}%"),
                )
            )
        total = query.count()
        listings = (
            query.options(joinedload(Listing.instrument), joinedload(Listing.exchange))
            .order_by(Listing.ticker.asc(), Listing.id.asc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return listings, total

    def put_listing(self, listing: Listing) -> Listing:
        self.db.add(listing)
        self.db.flush()
        return listing

    # --- Portfolios ---

    def get_portfolio(self, portfolio_id: str) -> Portfolio | None:
        return self.db.get(Portfolio, portfolio_id)

    def get_portfolio_for_user(self, user_id: str) -> Portfolio | None:
        return self.db.query(Portfolio).filter_by(user_id=user_id).first()

    def put_portfolio(self, portfolio: Portfolio) -> Portfolio:
        self.db.add(portfolio)
        self.db.flush()
        return portfolio

    # --- Transactions ---

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        return self.db.get(Transaction, transaction_id)

    def _filtered(self, portfolio_id: str, filters: TransactionFilters | None):
        query = self.db.query(Transaction).filter(Transaction.portfolio_id == portfolio_id)
        if filters is None:
            return query
        if filters.listing_id:
            query = query.filter(Transaction.listing_id == filters.listing_id)
        if filters.type:
            query = query.filter(Transaction.type == filters.type)
        if filters.start_date:
            query = query.filter(Transaction.date >= filters.start_date)
        if filters.end_date:
            query = query.filter(Transaction.date <= filters.end_date)
        return query

    def query_transactions(
        self,
        portfolio_id: str,
        filters: TransactionFilters | None = None,
        ascending: bool = False,
    ) -> list[Transaction]:
        query = self._filtered(portfolio_id, filters)
        if ascending:
            query = query.order_by(Transaction.date.asc(), Transaction.created_at.asc(), Transaction.id.asc())
        else:
            query = query.order_by(Transaction.date.desc(), Transaction.created_at.desc(), Transaction.id.desc())
        if filters is not None:
            query = query.limit(filters.limit).offset(filters.offset)
        return query.all()

    def query_position_history(self, portfolio_id: str, listing_id: str) -> list[Transaction]:
        return (
            self.db.query(Transaction)
            .filter_by(portfolio_id=portfolio_id, listing_id=listing_id)
            .order_by(Transaction.date.asc(), Transaction.created_at.asc(), Transaction.id.asc())
            .all()
        )

    def count_transactions(
        self, portfolio_id: str, filters: TransactionFilters | None = None
    ) -> int:
        return self._filtered(portfolio_id, filters).count()

    def put_transaction(self, transaction: Transaction) -> Transaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def delete_transaction(self, transaction: Transaction) -> None:
        self.db.delete(transaction)
        self.db.flush()

    # --- Unit of work ---

    @contextmanager
    def atomic(self):
        """Run the block in a savepoint; on error only its writes are undone."""
        with self.db.begin_nested():
            yield

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
