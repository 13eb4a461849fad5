"""Unit tests for the average-cost position calculator."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from services.position_calculator import Holding, compute_holdings, summarize_holdings


def _tx(listing_id, type, quantity, price, on, fees="0", currency="EUR"):
    return SimpleNamespace(
        listing_id=listing_id,
        type=type,
        date=on,
        quantity=Decimal(quantity),
        price_per_unit=Decimal(price),
        fees=Decimal(fees),
        currency=currency,
    )


class TestComputeHoldings:
    def test_two_buys_average_cost(self):
        """BUY 10 @ 100 (fees 2) + BUY 5 @ 106 (fees 1.5)."""
        transactions = [
            _tx("L1", "BUY", "10", "100", date(2024, 1, 1), fees="2"),
            _tx("L1", "BUY", "5", "106", date(2024, 2, 1), fees="1.5"),
        ]

        [holding] = compute_holdings(transactions)

        assert holding.quantity == Decimal("15")
        assert holding.total_cost == Decimal("1533.5")
        assert holding.avg_price.quantize(Decimal("0.01")) == Decimal("102.23")
        # Marked at cost without a price
        assert holding.current_price == holding.avg_price
        assert abs(holding.gain_loss) < Decimal("1e-20")
        assert holding.allocation == Decimal("100")

    def test_buys_only_sum_quantity_and_cost(self):
        transactions = [
            _tx("L1", "BUY", "3", "10", date(2024, 1, 1), fees="1"),
            _tx("L2", "BUY", "2", "50", date(2024, 1, 2)),
            _tx("L1", "BUY", "4", "12", date(2024, 1, 3), fees="0.5"),
        ]

        holdings = {h.listing_id: h for h in compute_holdings(transactions)}

        assert holdings["L1"].quantity == Decimal("7")
        assert holdings["L1"].total_cost == Decimal("31") + Decimal("48.5")
        assert holdings["L2"].total_cost == Decimal("100")

    def test_sell_reduces_cost_net_of_fees(self):
        transactions = [
            _tx("L1", "BUY", "10", "100", date(2024, 1, 1)),
            _tx("L1", "SELL", "4", "120", date(2024, 2, 1), fees="3"),
        ]

        [holding] = compute_holdings(transactions)

        assert holding.quantity == Decimal("6")
        # 1000 - (480 - 3)
        assert holding.total_cost == Decimal("523")

    def test_closed_position_omitted(self):
        transactions = [
            _tx("L1", "BUY", "10", "100", date(2024, 1, 1)),
            _tx("L1", "SELL", "10", "110", date(2024, 2, 1)),
            _tx("L2", "BUY", "1", "50", date(2024, 1, 1)),
        ]

        holdings = compute_holdings(transactions)

        assert [h.listing_id for h in holdings] == ["L2"]

    def test_input_order_does_not_matter(self):
        buy = _tx("L1", "BUY", "10", "100", date(2024, 1, 1))
        sell = _tx("L1", "SELL", "10", "100", date(2024, 2, 1))

        assert compute_holdings([sell, buy]) == []

    def test_current_price_used_when_available(self):
        transactions = [_tx("L1", "BUY", "10", "100", date(2024, 1, 1), fees="0")]
        prices = {"L1": Decimal("110")}

        [holding] = compute_holdings(transactions, prices.get)

        assert holding.current_price == Decimal("110")
        assert holding.market_value == Decimal("1100")
        assert holding.gain_loss == Decimal("100")
        assert holding.gain_loss_percent == Decimal("10")

    def test_allocation_sums_to_100(self):
        transactions = [
            _tx("L1", "BUY", "3", "33.33", date(2024, 1, 1)),
            _tx("L2", "BUY", "7", "12.5", date(2024, 1, 1)),
            _tx("L3", "BUY", "1", "999", date(2024, 1, 1)),
        ]

        holdings = compute_holdings(transactions)

        assert float(sum(h.allocation for h in holdings)) == pytest.approx(100.0)

    def test_zero_market_value_gives_zero_allocation(self):
        transactions = [_tx("L1", "BUY", "1", "10", date(2024, 1, 1))]

        [holding] = compute_holdings(transactions, lambda _: Decimal("0"))

        assert holding.market_value == Decimal("0")
        assert holding.allocation == Decimal("0")

    def test_zero_cost_guards_percent(self):
        transactions = [
            _tx("L1", "BUY", "10", "10", date(2024, 1, 1)),
            _tx("L1", "SELL", "5", "20", date(2024, 2, 1)),
        ]

        [holding] = compute_holdings(transactions, lambda _: Decimal("15"))

        assert holding.total_cost == Decimal("0")
        assert holding.gain_loss_percent == Decimal("0")

    def test_output_in_first_appearance_order(self):
        transactions = [
            _tx("B", "BUY", "1", "10", date(2024, 1, 2)),
            _tx("A", "BUY", "1", "10", date(2024, 1, 1)),
        ]
        assert [h.listing_id for h in compute_holdings(transactions)] == ["A", "B"]

    def test_deterministic(self):
        transactions = [
            _tx("L1", "BUY", "10", "100", date(2024, 1, 1), fees="2"),
            _tx("L2", "BUY", "5", "106", date(2024, 1, 1), fees="1.5"),
        ]
        assert compute_holdings(transactions) == compute_holdings(list(transactions))

    def test_currency_carried_from_transactions(self):
        [holding] = compute_holdings([_tx("L1", "BUY", "1", "10", date(2024, 1, 1), currency="USD")])
        assert holding.currency == "USD"


class TestHoldingToDict:
    def test_camel_case_keys(self):
        [holding] = compute_holdings([_tx("L1", "BUY", "1", "10", date(2024, 1, 1))])

        assert set(holding.to_dict()) == {
            "listingId", "quantity", "avgPrice", "currentPrice", "marketValue",
            "totalCost", "gainLoss", "gainLossPercent", "allocation", "currency",
        }


class TestSummarizeHoldings:
    def _holding(self, listing_id, value, cost, currency="EUR"):
        return Holding(
            listing_id=listing_id,
            quantity=Decimal("1"),
            avg_price=cost,
            current_price=value,
            market_value=value,
            total_cost=cost,
            gain_loss=value - cost,
            gain_loss_percent=Decimal("0"),
            allocation=Decimal("0"),
            currency=currency,
        )

    def test_totals_per_currency(self):
        summaries = summarize_holdings([
            self._holding("A", Decimal("110"), Decimal("100")),
            self._holding("B", Decimal("90"), Decimal("100")),
            self._holding("C", Decimal("50"), Decimal("40"), currency="USD"),
        ])

        by_currency = {s.currency: s for s in summaries}
        eur = by_currency["EUR"]
        assert eur.total_value == Decimal("200")
        assert eur.total_invested == Decimal("200")
        assert eur.total_gain_loss == Decimal("0")
        assert eur.holdings_count == 2
        assert by_currency["USD"].total_return_percent == Decimal("25")

    def test_empty(self):
        assert summarize_holdings([]) == []
