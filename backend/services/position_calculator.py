"""Average-cost position calculator.

Derives holdings from a transaction history. Nothing here touches the
store: callers load the transactions and resolve current prices, and the
same input always produces the same output.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Optional, Protocol

from models import TransactionType

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class LedgerEntry(Protocol):
    """The transaction attributes the calculator reads."""

    listing_id: str
    type: str
    date: object
    quantity: Decimal
    price_per_unit: Decimal
    fees: Decimal
    currency: str


@dataclass(frozen=True)
class Holding:
    """Derived position in one listing. Never persisted."""

    listing_id: str
    quantity: Decimal
    avg_price: Decimal
    current_price: Decimal
    market_value: Decimal
    total_cost: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal
    allocation: Decimal
    currency: str

    def to_dict(self) -> dict:
        """Serialize with the camelCase field names used by the presentation layer."""
        return {
            "listingId": self.listing_id,
            "quantity": self.quantity,
            "avgPrice": self.avg_price,
            "currentPrice": self.current_price,
            "marketValue": self.market_value,
            "totalCost": self.total_cost,
            "gainLoss": self.gain_loss,
            "gainLossPercent": self.gain_loss_percent,
            "allocation": self.allocation,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class PortfolioSummary:
    """Totals over the holdings that share one currency."""

    currency: str
    total_value: Decimal
    total_invested: Decimal
    total_gain_loss: Decimal
    total_return_percent: Decimal
    holdings_count: int


def _as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_holdings(
    transactions: Iterable[LedgerEntry],
    price_of: Optional[Callable[[str], Optional[Decimal]]] = None,
) -> list[Holding]:
    """Compute average-cost holdings from a transaction history.

    Per listing, in date order:
        BUY:  quantity += qty; total_cost += qty * price + fees
        SELL: quantity -= qty; total_cost -= qty * price - fees

    Listings whose final quantity is zero or less produce no holding. The
    current price comes from ``price_of`` and falls back to the average
    price (mark at cost). Allocation is each holding's share of the summed
    market value, or zero when that sum is zero.

    Args:
        transactions: Transactions in any order; sorted by date here (stable)
        price_of: Optional listing_id -> current price lookup

    Returns:
        Holdings in order of each listing's first appearance
    """
    ordered = sorted(transactions, key=lambda t: t.date)

    quantities: dict[str, Decimal] = {}
    costs: dict[str, Decimal] = {}
    currencies: dict[str, str] = {}

    for tx in ordered:
        listing_id = tx.listing_id
        if listing_id not in quantities:
            quantities[listing_id] = ZERO
            costs[listing_id] = ZERO
            currencies[listing_id] = tx.currency

        quantity = _as_decimal(tx.quantity)
        gross = quantity * _as_decimal(tx.price_per_unit)
        fees = _as_decimal(tx.fees)

        if tx.type == TransactionType.BUY.value:
            quantities[listing_id] += quantity
            costs[listing_id] += gross + fees
        elif tx.type == TransactionType.SELL.value:
            quantities[listing_id] -= quantity
            costs[listing_id] -= gross - fees

    partial: list[dict] = []
    for listing_id, quantity in quantities.items():
        if quantity <= 0:
            continue
        total_cost = costs[listing_id]
        avg_price = total_cost / quantity

        current_price = price_of(listing_id) if price_of else None
        current_price = avg_price if current_price is None else _as_decimal(current_price)

        market_value = quantity * current_price
        gain_loss = market_value - total_cost
        gain_loss_percent = gain_loss / total_cost * HUNDRED if total_cost != 0 else ZERO

        partial.append({
            "listing_id": listing_id,
            "quantity": quantity,
            "avg_price": avg_price,
            "current_price": current_price,
            "market_value": market_value,
            "total_cost": total_cost,
            "gain_loss": gain_loss,
            "gain_loss_percent": gain_loss_percent,
            "currency": currencies[listing_id],
        })

    total_value = sum((p["market_value"] for p in partial), ZERO)
    return [
        Holding(
            allocation=p["market_value"] / total_value * HUNDRED if total_value != 0 else ZERO,
            **p,
        )
        for p in partial
    ]


def summarize_holdings(holdings: Iterable[Holding]) -> list[PortfolioSummary]:
    """Aggregate holdings per currency; amounts are never converted."""
    groups: dict[str, list[Holding]] = {}
    for holding in holdings:
        groups.setdefault(holding.currency, []).append(holding)

    summaries = []
    for currency, group in groups.items():
        total_value = sum((h.market_value for h in group), ZERO)
        total_invested = sum((h.total_cost for h in group), ZERO)
        total_gain_loss = total_value - total_invested
        summaries.append(
            PortfolioSummary(
                currency=currency,
                total_value=total_value,
                total_invested=total_invested,
                total_gain_loss=total_gain_loss,
                total_return_percent=(
                    total_gain_loss / total_invested * HUNDRED if total_invested != 0 else ZERO
                ),
                holdings_count=len(group),
            )
        )
    return summaries
