"""Transaction ledger: record, edit, delete and list BUY/SELL entries.

A SELL is accepted only if the position never goes negative from the
SELL's date onward. Validation reads the (portfolio, listing) history and
the write commits while a per-position lock is held, so two concurrent
SELLs cannot both pass against the same stale quantity.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Iterator, Optional

from errors import ForbiddenError, InsufficientQuantityError, NotFoundError
from models import Listing, Transaction, TransactionType
from schemas.transaction import TransactionCreate, TransactionFilters, TransactionUpdate
from services.catalog_service import CatalogService
from services.portfolio_service import PortfolioService
from services.transaction_validation import (
    validate_transaction_create,
    validate_transaction_update,
)
from store import Store

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# One lock per (portfolio_id, listing_id); only grows, bounded by positions
_position_locks: dict[tuple[str, str], threading.Lock] = {}
_position_locks_guard = threading.Lock()


def _position_lock(portfolio_id: str, listing_id: str) -> threading.Lock:
    key = (portfolio_id, listing_id)
    with _position_locks_guard:
        lock = _position_locks.get(key)
        if lock is None:
            lock = _position_locks[key] = threading.Lock()
        return lock


@dataclass(frozen=True)
class _Entry:
    date: date
    type: str
    quantity: Decimal

    @property
    def signed_quantity(self) -> Decimal:
        if self.type == TransactionType.SELL.value:
            return -self.quantity
        return self.quantity


def _entries(history: Iterable) -> list[_Entry]:
    return [_Entry(t.date, t.type, Decimal(t.quantity)) for t in history]


def _ledger_order(entries: list[_Entry]) -> list[_Entry]:
    # Within a day, BUYs settle before SELLs
    return sorted(entries, key=lambda e: (e.date, e.type == TransactionType.SELL.value))


def calculate_total_amount(
    quantity: Decimal, price_per_unit: Decimal, fees: Optional[Decimal]
) -> Decimal:
    """``quantity * price_per_unit + fees``."""
    return quantity * price_per_unit + (fees or ZERO)


def available_quantity(history: Iterable, on_date: date) -> Decimal:
    """Units that can be sold on ``on_date`` without any later balance going negative.

    Everything dated on or before ``on_date`` counts toward the balance at
    the SELL's position; the result is the lowest balance from that
    position to the end of the history. Never negative.
    """
    entries = _ledger_order(_entries(history))
    running = sum((e.signed_quantity for e in entries if e.date <= on_date), ZERO)
    available = running
    for entry in entries:
        if entry.date > on_date:
            running += entry.signed_quantity
            available = min(available, running)
    return max(available, ZERO)


def _first_shortfall(entries: list[_Entry]) -> Optional[tuple[Decimal, Decimal]]:
    """Return (available, requested) for the first SELL the history cannot cover."""
    running = ZERO
    for entry in _ledger_order(entries):
        if entry.type == TransactionType.SELL.value and entry.quantity > running:
            return max(running, ZERO), entry.quantity
        running += entry.signed_quantity
    return None


class TransactionPage:
    """One page of a portfolio's transactions, newest first.

    Holds no cursor: iterating runs the query again, so a page can be
    iterated any number of times and always reflects the current ledger.
    """

    def __init__(self, store: Store, portfolio_id: Optional[str], filters: TransactionFilters):
        self._store = store
        self._portfolio_id = portfolio_id
        self.filters = filters

    @property
    def limit(self) -> int:
        return self.filters.limit

    @property
    def offset(self) -> int:
        return self.filters.offset

    @property
    def total(self) -> int:
        """Number of transactions matching the filters, ignoring pagination."""
        if self._portfolio_id is None:
            return 0
        return self._store.count_transactions(self._portfolio_id, self.filters)

    def __iter__(self) -> Iterator[Transaction]:
        if self._portfolio_id is None:
            return iter(())
        return iter(self._store.query_transactions(self._portfolio_id, self.filters))


class TransactionService:
    """Ledger operations scoped to the owning user."""

    @staticmethod
    def _resolve_listing(store: Store, data: TransactionCreate) -> Listing:
        if data.listing_id is not None:
            return CatalogService.get_listing(store, data.listing_id)
        return CatalogService.ensure_listing(store, data.listing)

    @staticmethod
    def create_transaction(store: Store, user_id: str, data: TransactionCreate) -> Transaction:
        """Record a transaction in the user's portfolio.

        The portfolio is created on first use. A new-listing spec is
        resolved through the catalog before the transaction is recorded.

        Raises:
            ValidationError: If any field is invalid
            NotFoundError: If ``listing_id`` or the new listing's exchange is unknown
            InsufficientQuantityError: If a SELL exceeds the units held
        """
        validate_transaction_create(data)

        portfolio = PortfolioService.get_or_create_portfolio(store, user_id)
        listing = TransactionService._resolve_listing(store, data)
        fees = data.fees if data.fees is not None else ZERO

        with _position_lock(portfolio.id, listing.id):
            if data.type == TransactionType.SELL.value:
                history = store.query_position_history(portfolio.id, listing.id)
                available = available_quantity(history, data.date)
                if data.quantity > available:
                    logger.info(
                        "Rejected SELL of %s %s in portfolio %s: %s available",
                        data.quantity, listing.id, portfolio.id, available,
                    )
                    raise InsufficientQuantityError(available, data.quantity)

            transaction = Transaction(
                portfolio_id=portfolio.id,
                listing_id=listing.id,
                type=data.type,
                date=data.date,
                quantity=data.quantity,
                price_per_unit=data.price_per_unit,
                total_amount=calculate_total_amount(data.quantity, data.price_per_unit, fees),
                currency=data.currency.strip().upper(),
                fees=fees,
                notes=data.notes or None,
            )
            store.put_transaction(transaction)
            store.commit()

        logger.info(
            "Recorded %s %s x %s @ %s in portfolio %s",
            transaction.type, transaction.quantity, listing.id,
            transaction.price_per_unit, portfolio.id,
        )
        return transaction

    @staticmethod
    def get_transaction(store: Store, owner_id: str, transaction_id: str) -> Transaction:
        """Get a transaction the caller owns.

        Raises:
            NotFoundError: If the transaction does not exist
            ForbiddenError: If it belongs to another user's portfolio
        """
        transaction = store.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        if transaction.portfolio.user_id != owner_id:
            raise ForbiddenError("You do not have access to this transaction")
        return transaction

    @staticmethod
    def update_transaction(
        store: Store,
        owner_id: str,
        transaction_id: str,
        data: TransactionUpdate,
    ) -> Transaction:
        """Apply a partial update; fields not set on ``data`` keep their values.

        The edited history for the position is re-checked with the same
        rule as creation, so an edit cannot leave any SELL uncovered.

        Raises:
            ValidationError: If a changed field is invalid
            NotFoundError / ForbiddenError: As for get_transaction
            InsufficientQuantityError: If the edit leaves a SELL uncovered
        """
        validate_transaction_update(data)
        transaction = TransactionService.get_transaction(store, owner_id, transaction_id)
        changes = data.model_dump(exclude_unset=True)

        with _position_lock(transaction.portfolio_id, transaction.listing_id):
            new_type = changes.get("type", transaction.type)
            new_date = changes.get("date", transaction.date)
            new_quantity = changes.get("quantity", transaction.quantity)

            if {"type", "date", "quantity"} & changes.keys():
                history = store.query_position_history(
                    transaction.portfolio_id, transaction.listing_id
                )
                others = [t for t in history if t.id != transaction.id]
                if new_type == TransactionType.SELL.value:
                    available = available_quantity(others, new_date)
                    if new_quantity > available:
                        raise InsufficientQuantityError(available, new_quantity)
                shortfall = _first_shortfall(
                    _entries(others) + [_Entry(new_date, new_type, Decimal(new_quantity))]
                )
                if shortfall is not None:
                    raise InsufficientQuantityError(*shortfall)

            for key, value in changes.items():
                if key == "currency":
                    value = value.strip().upper()
                elif key == "fees" and value is None:
                    value = ZERO
                elif key == "notes":
                    value = value or None
                setattr(transaction, key, value)

            if {"quantity", "price_per_unit", "fees"} & changes.keys():
                transaction.total_amount = calculate_total_amount(
                    transaction.quantity, transaction.price_per_unit, transaction.fees
                )

            store.put_transaction(transaction)
            store.commit()

        logger.info("Updated transaction %s (%s)", transaction.id, ", ".join(sorted(changes)))
        return transaction

    @staticmethod
    def delete_transaction(store: Store, owner_id: str, transaction_id: str) -> None:
        """Permanently remove a transaction the caller owns.

        Raises:
            NotFoundError / ForbiddenError: As for get_transaction
        """
        transaction = TransactionService.get_transaction(store, owner_id, transaction_id)
        with _position_lock(transaction.portfolio_id, transaction.listing_id):
            store.delete_transaction(transaction)
            store.commit()
        logger.info("Deleted transaction %s", transaction_id)

    @staticmethod
    def list_transactions(
        store: Store,
        owner_id: str,
        filters: Optional[TransactionFilters] = None,
    ) -> TransactionPage:
        """List the caller's transactions, filtered and paginated.

        A user without a portfolio gets an empty page.
        """
        portfolio = PortfolioService.get_user_portfolio(store, owner_id)
        return TransactionPage(
            store,
            portfolio.id if portfolio is not None else None,
            filters or TransactionFilters(),
        )
