"""
Data models for the portfolio aggregator.

This package contains all data structures used throughout the aggregator,
following the state-first principle with immutable data structures.
"""

from .config import ConfigurationError, ConnectionConfig, RetryConfig
from .account import (
    AccountSnapshot,
    AccountType,
    Balance,
    FetchFailure,
    FetchResult,
    PortfolioScope,
    PortfolioSnapshot,
)
from .market import PriceTable

__all__ = [
    # Configuration
    "ConfigurationError",
    "ConnectionConfig",
    "RetryConfig",
    # Account
    "AccountSnapshot",
    "AccountType",
    "Balance",
    "FetchFailure",
    "FetchResult",
    "PortfolioScope",
    "PortfolioSnapshot",
    # Market
    "PriceTable",
]
