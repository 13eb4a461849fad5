"""Portfolio ownership and the holdings read model."""

import logging
from typing import Optional

from config import settings
from errors import ForbiddenError, NotFoundError
from integrations.feed_protocol import PriceProvider
from models import Portfolio
from services.position_calculator import (
    Holding,
    PortfolioSummary,
    compute_holdings,
    summarize_holdings,
)
from store import Store

logger = logging.getLogger(__name__)


class PortfolioService:
    """Portfolios are created lazily, one per user, on the first transaction.

    Holdings are never stored; every read replays the portfolio's
    transaction history through the position calculator.
    """

    @staticmethod
    def get_or_create_portfolio(store: Store, user_id: str) -> Portfolio:
        """Get the user's portfolio, creating it if this is their first use."""
        portfolio = store.get_portfolio_for_user(user_id)
        if portfolio is None:
            portfolio = Portfolio(user_id=user_id, name=settings.DEFAULT_PORTFOLIO_NAME)
            store.put_portfolio(portfolio)
            logger.info("Created portfolio %s for user %s", portfolio.id, user_id)
        return portfolio

    @staticmethod
    def get_user_portfolio(store: Store, user_id: str) -> Optional[Portfolio]:
        return store.get_portfolio_for_user(user_id)

    @staticmethod
    def get_owned_portfolio(store: Store, user_id: str, portfolio_id: str) -> Portfolio:
        """Get a portfolio and check it belongs to ``user_id``.

        Raises:
            NotFoundError: If the portfolio does not exist
            ForbiddenError: If it belongs to another user
        """
        portfolio = store.get_portfolio(portfolio_id)
        if portfolio is None:
            raise NotFoundError(f"Portfolio not found: {portfolio_id}")
        if portfolio.user_id != user_id:
            raise ForbiddenError("You do not have access to this portfolio")
        return portfolio

    @staticmethod
    def get_portfolio_holdings(
        store: Store,
        user_id: str,
        portfolio_id: str,
        price_provider: Optional[PriceProvider] = None,
    ) -> list[Holding]:
        """Compute current holdings for a portfolio the user owns.

        Listings without a known price are marked at cost.
        """
        portfolio = PortfolioService.get_owned_portfolio(store, user_id, portfolio_id)
        transactions = list(store.query_transactions(portfolio.id, ascending=True))
        price_of = price_provider.price_of if price_provider is not None else None
        holdings = compute_holdings(transactions, price_of)
        logger.debug(
            "Portfolio %s: %d holdings from %d transactions",
            portfolio.id, len(holdings), len(transactions),
        )
        return holdings

    @staticmethod
    def get_portfolio_summary(
        store: Store,
        user_id: str,
        portfolio_id: str,
        price_provider: Optional[PriceProvider] = None,
    ) -> list[PortfolioSummary]:
        """Per-currency totals over the portfolio's holdings."""
        return summarize_holdings(
            PortfolioService.get_portfolio_holdings(store, user_id, portfolio_id, price_provider)
        )
