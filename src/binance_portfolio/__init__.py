"""
Binance Portfolio - consolidated USD valuation of a Binance account.

This package aggregates balances across spot, margin, futures, coin-margined
futures, earn, funding and every sub-account, values each asset in USD and
produces a single portfolio snapshot with a grand total.
"""

from .aggregator import (
    PortfolioAggregator,
    PortfolioFetchError,
    create_portfolio_aggregator,
)
from .auth import sign
from .fetchers import (
    AccountFetcher,
    CoinFuturesFetcher,
    EarnFetcher,
    FundingFetcher,
    FuturesFetcher,
    MarginFetcher,
    SpotFetcher,
)
from .models import (
    # Configuration
    ConfigurationError,
    ConnectionConfig,
    RetryConfig,
    # Account
    AccountSnapshot,
    AccountType,
    Balance,
    FetchFailure,
    FetchResult,
    PortfolioScope,
    PortfolioSnapshot,
    # Market
    PriceTable,
)
from .prices import PriceFetchError, PriceOracle
from .sub_accounts import SubAccountDiscoverer, SubAccountFetcher
from .valuation import resolve_usd_price, value_usd

__all__ = [
    # Main entry points
    "PortfolioAggregator",
    "PortfolioFetchError",
    "create_portfolio_aggregator",
    # Components
    "sign",
    "PriceOracle",
    "PriceFetchError",
    "value_usd",
    "resolve_usd_price",
    "AccountFetcher",
    "SpotFetcher",
    "MarginFetcher",
    "FuturesFetcher",
    "CoinFuturesFetcher",
    "EarnFetcher",
    "FundingFetcher",
    "SubAccountDiscoverer",
    "SubAccountFetcher",
    # Models
    "ConfigurationError",
    "ConnectionConfig",
    "RetryConfig",
    "AccountSnapshot",
    "AccountType",
    "Balance",
    "FetchFailure",
    "FetchResult",
    "PortfolioScope",
    "PortfolioSnapshot",
    "PriceTable",
]
