"""
Portfolio aggregator - main orchestration module.

This module provides the PortfolioAggregator class that runs one
aggregation cycle end to end:

- fetch the price table once (fatal if it fails)
- fan out the six master-account fetchers concurrently and join them
- discover sub-accounts and fan out their spot/futures fetches
- merge everything into a PortfolioSnapshot with a grand total

Every cycle opens its own HTTP session and closes it when done; nothing but
configuration survives between cycles.
"""

import asyncio
import logging
import os
from typing import Awaitable, Dict, List, Optional, Sequence

from aiohttp import ClientSession
from dotenv import load_dotenv

from .constants import (
    DEFAULT_MAX_CONCURRENT_SUB_ACCOUNTS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RECV_WINDOW,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
)
from .fetchers import MASTER_FETCHERS, AccountFetcher
from .http_client import HttpClient
from .models import (
    ConfigurationError,
    ConnectionConfig,
    FetchFailure,
    FetchResult,
    PortfolioScope,
    PortfolioSnapshot,
    PriceTable,
    RetryConfig,
)
from .monitoring import FetchMetrics, FetchMonitor, Statistics
from .prices import PriceFetchError, PriceOracle
from .session_manager import SessionManager
from .sub_accounts import SUB_ACCOUNT_LIST_SOURCE, SubAccountDiscoverer, SubAccountFetcher
from .utils import utc_timestamp

logger = logging.getLogger(__name__)


class PortfolioFetchError(Exception):
    """Raised when a cycle cannot produce a meaningful portfolio."""
    pass


class PortfolioAggregator:
    """
    Aggregates balances across all product lines and sub-accounts.

    Partial failures are absorbed into the result (see
    ``PortfolioSnapshot.failures``); only a missing price table or every
    master fetch failing aborts the cycle.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        retry_config: Optional[RetryConfig] = None,
        max_concurrent_sub_accounts: int = DEFAULT_MAX_CONCURRENT_SUB_ACCOUNTS,
    ):
        """Initialize aggregator with configuration."""
        if max_concurrent_sub_accounts < 1:
            raise ValueError("max_concurrent_sub_accounts must be at least 1")

        self._config = config
        self._http_client = HttpClient(config, retry_config)
        self._price_oracle = PriceOracle(config.spot_base_url, config.timeout)
        self._fetchers: List[AccountFetcher] = [
            fetcher_cls(self._http_client, config) for fetcher_cls in MASTER_FETCHERS
        ]
        self._discoverer = SubAccountDiscoverer(self._http_client, config)
        self._sub_account_fetcher = SubAccountFetcher(self._http_client, config)
        self._max_concurrent_sub_accounts = max_concurrent_sub_accounts
        self._monitor = FetchMonitor()

    @classmethod
    def from_env(cls) -> "PortfolioAggregator":
        """
        Create aggregator from environment variables.

        Raises:
            ConfigurationError: If the API key or secret is missing, or a
                numeric setting is not a number
        """
        load_dotenv()

        api_key = os.getenv("BINANCE_API_KEY", "")
        api_secret = os.getenv("BINANCE_SECRET_KEY") or os.getenv("BINANCE_API_SECRET", "")

        timeout = os.getenv("BINANCE_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(timeout)
        except ValueError as e:
            raise ConfigurationError(f"BINANCE_TIMEOUT must be a number, got {timeout!r}") from e

        recv_window = os.getenv("BINANCE_RECV_WINDOW", str(DEFAULT_RECV_WINDOW))
        try:
            recv_window = int(recv_window)
        except ValueError as e:
            raise ConfigurationError(
                f"BINANCE_RECV_WINDOW must be an integer, got {recv_window!r}"
            ) from e

        config = ConnectionConfig(
            api_key=api_key,
            api_secret=api_secret,
            timeout=timeout,
            recv_window=recv_window,
        )

        return cls(config)

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    async def fetch_prices(self) -> PriceTable:
        """
        Fetch the current price table on a dedicated session.

        Raises:
            PriceFetchError: If the ticker list cannot be fetched
        """
        async with SessionManager(self._config).managed_session() as session:
            return await self._price_oracle.fetch_prices(session)

    async def aggregate(self) -> PortfolioSnapshot:
        """
        Run one full aggregation cycle.

        Returns:
            PortfolioSnapshot for this cycle

        Raises:
            PortfolioFetchError: If prices are unavailable or every master
                account fetch failed
        """
        # A session per cycle keeps concurrent cycles from sharing state
        async with SessionManager(self._config).managed_session() as session:
            try:
                snapshot = await self._run_cycle(session)
            except PortfolioFetchError:
                self._monitor.record_cycle(success=False)
                raise

        self._monitor.record_cycle(success=True)
        logger.info(
            f"Portfolio aggregated: master ${snapshot.master.total_usd_value:.2f} "
            f"({len(snapshot.master.accounts)} accounts), "
            f"sub-accounts ${snapshot.sub_accounts.total_usd_value:.2f} "
            f"({len(snapshot.sub_accounts.accounts)} accounts), "
            f"{len(snapshot.failures)} failures"
        )
        return snapshot

    async def _run_cycle(self, session: ClientSession) -> PortfolioSnapshot:
        try:
            price_table = await self._price_oracle.fetch_prices(session)
        except PriceFetchError as e:
            logger.error(f"Aborting cycle, price table unavailable: {e}")
            raise PortfolioFetchError(f"Failed to fetch price table: {e}") from e

        master_results = await asyncio.gather(*(
            self._timed(fetcher.source, fetcher.fetch(session, price_table))
            for fetcher in self._fetchers
        ))

        if not any(result.success for result in master_results):
            logger.error("Aborting cycle, every master account fetch failed")
            raise PortfolioFetchError("All master account fetches failed")

        master = PortfolioScope.from_snapshots([r.snapshot for r in master_results])

        failures: List[FetchFailure] = [
            FetchFailure(r.source, r.error) for r in master_results if not r.success
        ]

        start = asyncio.get_running_loop().time()
        listing = await self._discoverer.discover(session)
        self._monitor.record_fetch(
            SUB_ACCOUNT_LIST_SOURCE,
            listing.success,
            (asyncio.get_running_loop().time() - start) * 1000,
            listing.error,
        )
        if not listing.success:
            failures.append(FetchFailure(SUB_ACCOUNT_LIST_SOURCE, listing.error))

        sub_results = await self._fetch_sub_accounts(session, listing.identifiers, price_table)
        failures.extend(FetchFailure(r.source, r.error) for r in sub_results if not r.success)

        sub_accounts = PortfolioScope.from_snapshots([r.snapshot for r in sub_results])

        return PortfolioSnapshot(
            master=master,
            sub_accounts=sub_accounts,
            grand_total=master.total_usd_value + sub_accounts.total_usd_value,
            timestamp=utc_timestamp(),
            failures=tuple(failures),
        )

    async def _fetch_sub_accounts(
        self,
        session: ClientSession,
        identifiers: Sequence[str],
        price_table: PriceTable,
    ) -> List[FetchResult]:
        """Fetch every sub-account, at most N at a time, in discovery order."""
        semaphore = asyncio.Semaphore(self._max_concurrent_sub_accounts)

        async def fetch_one(identifier: str) -> List[FetchResult]:
            async with semaphore:
                start = asyncio.get_running_loop().time()
                results = await self._sub_account_fetcher.fetch_results(
                    session, identifier, price_table
                )
                duration_ms = (asyncio.get_running_loop().time() - start) * 1000
                for result in results:
                    self._monitor.record_fetch(
                        result.source, result.success, duration_ms, result.error
                    )
                return results

        nested = await asyncio.gather(*(fetch_one(i) for i in identifiers))
        return [result for results in nested for result in results]

    async def _timed(self, source: str, fetch: Awaitable[FetchResult]) -> FetchResult:
        """Await a fetch and record its outcome."""
        start = asyncio.get_running_loop().time()
        result = await fetch
        duration_ms = (asyncio.get_running_loop().time() - start) * 1000
        self._monitor.record_fetch(source, result.success, duration_ms, result.error)
        return result

    # Monitoring
    def get_statistics(self) -> Statistics:
        """Get fetch statistics."""
        return self._monitor.statistics

    def get_source_stats(self, source: str) -> Dict[str, float]:
        """Get statistics for one source kind."""
        return self._monitor.get_source_stats(source)

    def get_recent_failures(self, count: int = 10) -> List[FetchMetrics]:
        """Get the most recent failed fetches."""
        return self._monitor.get_recent_failures(count)

    def get_error_rate(self, window_seconds: float = 60.0) -> float:
        """Share of fetches that failed within the last ``window_seconds``."""
        return self._monitor.get_error_rate(window_seconds)

    def reset_statistics(self) -> None:
        """Reset fetch statistics."""
        self._monitor.reset()


def create_portfolio_aggregator(
    api_key: str,
    api_secret: str,
    timeout: float = DEFAULT_TIMEOUT,
    recv_window: int = DEFAULT_RECV_WINDOW,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    max_concurrent_sub_accounts: int = DEFAULT_MAX_CONCURRENT_SUB_ACCOUNTS,
) -> PortfolioAggregator:
    """
    Factory function to create an aggregator with common configuration.

    Args:
        api_key: API key for authentication
        api_secret: API secret for authentication
        timeout: Per-request timeout in seconds
        recv_window: Receive window in milliseconds (default 5000)
        max_retries: Maximum number of retry attempts
        retry_delay: Initial delay between retries in seconds
        max_concurrent_sub_accounts: Sub-accounts fetched at the same time

    Returns:
        Configured PortfolioAggregator instance
    """
    config = ConnectionConfig(
        api_key=api_key,
        api_secret=api_secret,
        timeout=timeout,
        recv_window=recv_window,
    )

    retry_config = RetryConfig(
        max_retries=max_retries,
        retry_delay=retry_delay,
    )

    return PortfolioAggregator(config, retry_config, max_concurrent_sub_accounts)
