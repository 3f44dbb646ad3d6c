"""
HTTP service surface for the presentation layer.

Two read-only routes:

- ``GET /api/balances``: the aggregated portfolio, or an error envelope
- ``GET /api/prices``: the raw symbol -> price table

Error envelopes have the shape ``{"error": str, "details": str}``.
"""

import logging
from typing import Callable, Optional

from aiohttp import web

from .aggregator import PortfolioAggregator, PortfolioFetchError
from .constants import DEFAULT_SPOT_BASE_URL, DEFAULT_TIMEOUT
from .models.config import ConfigurationError
from .prices import PriceFetchError, PriceOracle

logger = logging.getLogger(__name__)

AggregatorFactory = Callable[[], PortfolioAggregator]


def error_response(status: int, error: str, details: Optional[str] = None) -> web.Response:
    body = {"error": error}
    if details:
        body["details"] = details
    return web.json_response(body, status=status)


class PortfolioHandlers:
    """Request handlers sharing one aggregator and one price oracle."""

    def __init__(self, aggregator_factory: AggregatorFactory, price_oracle: PriceOracle):
        self._aggregator_factory = aggregator_factory
        self._aggregator: Optional[PortfolioAggregator] = None
        self._price_oracle = price_oracle

    def _get_aggregator(self) -> PortfolioAggregator:
        """Build the aggregator on first use; credentials never change afterwards."""
        if self._aggregator is None:
            self._aggregator = self._aggregator_factory()
        return self._aggregator

    async def get_balances(self, request: web.Request) -> web.Response:
        """Aggregate balances across every account."""
        try:
            aggregator = self._get_aggregator()
        except ConfigurationError as e:
            logger.error(f"Balances requested without usable credentials: {e}")
            return error_response(500, "API credentials not configured", str(e))

        try:
            snapshot = await aggregator.aggregate()
        except PortfolioFetchError as e:
            return error_response(502, "Failed to fetch balances", str(e))

        return web.json_response(snapshot.to_dict())

    async def get_prices(self, request: web.Request) -> web.Response:
        """Current spot prices keyed by trading-pair symbol."""
        try:
            table = await self._price_oracle.fetch_prices()
        except PriceFetchError as e:
            return error_response(502, "Failed to fetch prices", str(e))

        return web.json_response(table.to_dict())

    async def health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def close(self, app: web.Application) -> None:
        await self._price_oracle.close()


def create_app(
    aggregator_factory: AggregatorFactory = PortfolioAggregator.from_env,
    price_oracle: Optional[PriceOracle] = None,
    spot_base_url: str = DEFAULT_SPOT_BASE_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> web.Application:
    """
    Build the web application.

    Args:
        aggregator_factory: Builds the aggregator; may raise ConfigurationError
        price_oracle: Oracle for ``/api/prices`` (no credentials needed)
        spot_base_url: Spot API base URL used when no oracle is given
        timeout: Request timeout used when no oracle is given

    Returns:
        Configured aiohttp application
    """
    handlers = PortfolioHandlers(
        aggregator_factory,
        price_oracle or PriceOracle(spot_base_url, timeout),
    )

    app = web.Application()
    app.router.add_get("/api/balances", handlers.get_balances)
    app.router.add_get("/api/prices", handlers.get_prices)
    app.router.add_get("/health", handlers.health)
    app.on_cleanup.append(handlers.close)

    return app
