"""
Per-product-line account fetchers.

Each fetcher knows one endpoint and one payload normalization. A fetch never
raises: any failure becomes a failed ``FetchResult`` carrying an empty
snapshot and the reason, so one product line going down cannot take the
others with it.
"""

import asyncio
import itertools
import logging
from typing import Any, Callable, ClassVar, Dict, List, Optional

import aiohttp
from aiohttp import ClientSession

from . import parsers
from .constants import (
    COIN_FUTURES_ACCOUNT_ENDPOINT,
    EARN_FLEXIBLE_POSITION_ENDPOINT,
    FUNDING_ASSET_ENDPOINT,
    FUTURES_ACCOUNT_ENDPOINT,
    MARGIN_ACCOUNT_ENDPOINT,
    SPOT_ACCOUNT_ENDPOINT,
)
from .http_client import HttpClient, HttpClientError
from .models.account import AccountSnapshot, AccountType, FetchResult
from .models.config import ConnectionConfig
from .models.market import PriceTable
from .parsers import Holding, ResponseDecodeError
from .valuation import make_balance

logger = logging.getLogger(__name__)


class AccountFetcher:
    """
    Base fetcher: request, normalize, value, snapshot.

    Subclasses only declare what differs between product lines.
    """

    account_type: ClassVar[AccountType]
    account_name: ClassVar[str]
    endpoint: ClassVar[str]
    method: ClassVar[str] = "GET"
    host: ClassVar[str] = "spot"
    default_params: ClassVar[Dict[str, Any]] = {}
    normalize: ClassVar[Callable[[Any], List[Holding]]]

    def __init__(
        self,
        http_client: HttpClient,
        config: ConnectionConfig,
        account_name: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
    ):
        self._http_client = http_client
        self._config = config
        self.name = account_name or self.account_name
        self.params = {**self.default_params, **(params or {})}
        self.source = source or self.account_type.value

    @property
    def base_url(self) -> str:
        return {
            "spot": self._config.spot_base_url,
            "futures": self._config.futures_base_url,
            "coin_futures": self._config.coin_futures_base_url,
        }[self.host]

    async def fetch(self, session: ClientSession, price_table: PriceTable) -> FetchResult:
        """Fetch, normalize and value this product line; never raises."""
        try:
            payload = await self._request_payload(session)
            holdings = self.normalize(payload)
        except (HttpClientError, ResponseDecodeError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            reason = str(e) or type(e).__name__
            logger.warning(f"{self.source} fetch failed: {reason}")
            return FetchResult.failed(self.source, self.account_type, self.name, reason)
        except Exception as e:
            logger.exception(f"{self.source} fetch failed unexpectedly")
            return FetchResult.failed(
                self.source, self.account_type, self.name, f"Unexpected error: {e!r}"
            )

        balances = [
            make_balance(h.asset, h.free, h.locked, h.total, price_table)
            for h in holdings
        ]
        snapshot = AccountSnapshot.build(self.account_type, self.name, balances)
        logger.debug(
            f"{self.source}: {len(snapshot.balances)} balances, "
            f"${snapshot.total_usd_value:.2f}"
        )
        return FetchResult.ok(self.source, snapshot)

    async def _request_payload(self, session: ClientSession) -> Any:
        return await self._http_client.request(
            session, self.method, self.base_url, self.endpoint, params=self.params
        )


class SpotFetcher(AccountFetcher):
    account_type = AccountType.SPOT
    account_name = "Spot"
    endpoint = SPOT_ACCOUNT_ENDPOINT
    default_params = {"omitZeroBalances": "true"}
    normalize = staticmethod(parsers.normalize_spot)


class MarginFetcher(AccountFetcher):
    account_type = AccountType.MARGIN
    account_name = "Margin"
    endpoint = MARGIN_ACCOUNT_ENDPOINT
    normalize = staticmethod(parsers.normalize_margin)


class FuturesFetcher(AccountFetcher):
    account_type = AccountType.FUTURES
    account_name = "USD-M Futures"
    endpoint = FUTURES_ACCOUNT_ENDPOINT
    host = "futures"
    normalize = staticmethod(parsers.normalize_futures)


class CoinFuturesFetcher(AccountFetcher):
    account_type = AccountType.COIN_FUTURES
    account_name = "COIN-M Futures"
    endpoint = COIN_FUTURES_ACCOUNT_ENDPOINT
    host = "coin_futures"
    normalize = staticmethod(parsers.normalize_coin_futures)


class EarnFetcher(AccountFetcher):
    account_type = AccountType.EARN
    account_name = "Earn"
    endpoint = EARN_FLEXIBLE_POSITION_ENDPOINT
    default_params = {"size": 100}
    normalize = staticmethod(parsers.normalize_earn)

    async def _request_payload(self, session: ClientSession) -> Any:
        """Every page of flexible positions, merged into one ``rows`` payload."""
        size = self.params["size"]
        rows: List[Any] = []
        for current in itertools.count(1):
            payload = await self._http_client.request(
                session,
                self.method,
                self.base_url,
                self.endpoint,
                params={**self.params, "current": current},
            )
            batch, total = parsers.parse_earn_page(payload)
            rows.extend(batch)
            if len(batch) < size or (total is not None and len(rows) >= total):
                return {"rows": rows, "total": len(rows)}


class FundingFetcher(AccountFetcher):
    account_type = AccountType.FUNDING
    account_name = "Funding"
    endpoint = FUNDING_ASSET_ENDPOINT
    method = "POST"
    normalize = staticmethod(parsers.normalize_funding)


MASTER_FETCHERS = (
    SpotFetcher,
    MarginFetcher,
    FuturesFetcher,
    CoinFuturesFetcher,
    EarnFetcher,
    FundingFetcher,
)
