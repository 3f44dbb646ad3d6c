"""
Sub-account discovery and per-sub-account balance fetching.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import aiohttp
from aiohttp import ClientSession

from . import parsers
from .constants import (
    SUB_ACCOUNT_FUTURES_ENDPOINT,
    SUB_ACCOUNT_LIST_ENDPOINT,
    SUB_ACCOUNT_LIST_LIMIT,
    SUB_ACCOUNT_SPOT_ENDPOINT,
)
from .fetchers import AccountFetcher
from .http_client import HttpClient, HttpClientError
from .models.account import AccountSnapshot, AccountType, FetchResult
from .models.config import ConnectionConfig
from .models.market import PriceTable
from .parsers import ResponseDecodeError
from .utils import local_part

logger = logging.getLogger(__name__)

SUB_ACCOUNT_LIST_SOURCE = "sub_account_list"


class SubAccountSpotFetcher(AccountFetcher):
    account_type = AccountType.SUB_SPOT
    account_name = "Spot"
    endpoint = SUB_ACCOUNT_SPOT_ENDPOINT
    normalize = staticmethod(parsers.normalize_sub_spot)


class SubAccountFuturesFetcher(AccountFetcher):
    account_type = AccountType.SUB_FUTURES
    account_name = "Futures"
    endpoint = SUB_ACCOUNT_FUTURES_ENDPOINT
    normalize = staticmethod(parsers.normalize_sub_futures)


@dataclass(frozen=True)
class SubAccountListing:
    """Discovered sub-account identifiers, or the reason discovery failed."""
    identifiers: Tuple[str, ...] = ()
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class SubAccountDiscoverer:
    """Lists the sub-accounts under the master account."""

    def __init__(
        self,
        http_client: HttpClient,
        config: ConnectionConfig,
        page_size: int = SUB_ACCOUNT_LIST_LIMIT,
    ):
        self._http_client = http_client
        self._config = config
        self._page_size = page_size

    async def discover(self, session: ClientSession) -> SubAccountListing:
        """
        Fetch sub-account identifiers.

        Pages are requested until one comes back short. Failure on any page
        degrades to an empty listing with the reason attached; an account
        without sub-account permissions simply has none.
        """
        identifiers: List[str] = []
        try:
            for page in itertools.count(1):
                payload = await self._http_client.request(
                    session,
                    "GET",
                    self._config.spot_base_url,
                    SUB_ACCOUNT_LIST_ENDPOINT,
                    params={"page": page, "limit": self._page_size},
                )
                batch = parsers.parse_sub_account_list(payload)
                identifiers.extend(batch)
                if len(batch) < self._page_size:
                    break
        except (HttpClientError, ResponseDecodeError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            reason = str(e) or type(e).__name__
            logger.warning(f"Sub-account discovery failed: {reason}")
            return SubAccountListing(error=reason)

        # Preserve exchange order, drop duplicates
        unique = tuple(dict.fromkeys(identifiers))
        logger.info(f"Discovered {len(unique)} sub-accounts")
        return SubAccountListing(identifiers=unique)

    async def list_sub_accounts(self, session: ClientSession) -> List[str]:
        """Sub-account identifiers; empty on any failure."""
        listing = await self.discover(session)
        return list(listing.identifiers)


class SubAccountFetcher:
    """Fetches spot and futures balances scoped to one sub-account."""

    def __init__(self, http_client: HttpClient, config: ConnectionConfig):
        self._http_client = http_client
        self._config = config

    def _fetchers(self, identifier: str) -> Tuple[AccountFetcher, AccountFetcher]:
        prefix = local_part(identifier)
        params = {"email": identifier}
        return (
            SubAccountSpotFetcher(
                self._http_client,
                self._config,
                account_name=f"{prefix} - Spot",
                params=params,
                source=f"sub_spot:{identifier}",
            ),
            SubAccountFuturesFetcher(
                self._http_client,
                self._config,
                account_name=f"{prefix} - Futures",
                params=params,
                source=f"sub_futures:{identifier}",
            ),
        )

    async def fetch_results(
        self,
        session: ClientSession,
        identifier: str,
        price_table: PriceTable,
    ) -> List[FetchResult]:
        """
        Spot and futures results for one sub-account.

        Both calls run concurrently and fail independently.
        """
        spot, futures = self._fetchers(identifier)
        results = await asyncio.gather(
            spot.fetch(session, price_table),
            futures.fetch(session, price_table),
        )
        return list(results)

    async def fetch_sub_account(
        self,
        session: ClientSession,
        identifier: str,
        price_table: PriceTable,
    ) -> List[AccountSnapshot]:
        """Zero, one or two snapshots: only product lines holding something."""
        results = await self.fetch_results(session, identifier, price_table)
        return [r.snapshot for r in results if not r.snapshot.is_empty]
