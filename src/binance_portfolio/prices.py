# -*- coding: utf-8 -*-
"""
Binance Price Oracle

This module fetches the full spot ticker list from Binance's public market
data endpoint and turns it into a ``PriceTable``. No authentication is
required.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from .constants import DEFAULT_SPOT_BASE_URL, DEFAULT_TIMEOUT, TICKER_PRICE_ENDPOINT
from .models.market import PriceTable
from .parsers import ResponseDecodeError, parse_ticker_prices
from .utils import validate_url


logger = logging.getLogger(__name__)


class PriceFetchError(Exception):
    """Raised when the price table cannot be fetched or decoded."""
    pass


class PriceOracle:
    """
    Fetches current spot prices for every traded pair.

    Can be used standalone as an async context manager (it then owns its
    session), or handed an existing session per call.
    """

    def __init__(self, base_url: str = DEFAULT_SPOT_BASE_URL, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the price oracle.

        Args:
            base_url: Base URL of the spot API
            timeout: Total request timeout in seconds
        """
        if not validate_url(base_url):
            raise ValueError("Base URL must be a valid HTTP/HTTPS URL")

        self.base_url = base_url.rstrip("/")
        self._session: Optional[ClientSession] = None
        self._timeout = ClientTimeout(total=timeout)

    async def _get_session(self) -> ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=self._timeout)
        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _make_request(self, session: ClientSession, endpoint: str) -> Any:
        """
        Make a public GET request.

        Args:
            session: Session to issue the request on
            endpoint: API endpoint path

        Returns:
            Decoded JSON body
        """
        url = f"{self.base_url}{endpoint}"
        async with session.get(url) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def fetch_prices(self, session: Optional[ClientSession] = None) -> PriceTable:
        """
        Fetch the full price table.

        Args:
            session: Optional session to reuse; defaults to the oracle's own

        Returns:
            PriceTable keyed by trading-pair symbol

        Raises:
            PriceFetchError: On network, HTTP status or decode failure
        """
        session = session or await self._get_session()

        try:
            payload = await self._make_request(session, TICKER_PRICE_ENDPOINT)
            table = parse_ticker_prices(payload)
        except asyncio.TimeoutError as e:
            logger.error("Price table request timed out")
            raise PriceFetchError("Price table request timed out") from e
        except aiohttp.ClientResponseError as e:
            logger.error(f"Price table request failed with status {e.status}")
            raise PriceFetchError(f"Price table request failed with status {e.status}") from e
        except ClientError as e:
            logger.error(f"Price table request failed: {e}")
            raise PriceFetchError(f"Price table request failed: {e}") from e
        except (ResponseDecodeError, ValueError) as e:
            logger.error(f"Price table could not be decoded: {e}")
            raise PriceFetchError(f"Price table could not be decoded: {e}") from e

        logger.debug(f"Fetched {len(table)} prices")
        return table
