# -*- coding: utf-8 -*-
"""
Shared fixtures and utilities for testing the portfolio aggregator.
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, Mock
from typing import Any, Callable, Dict, List

import aiohttp

from binance_portfolio.constants import (
    COIN_FUTURES_ACCOUNT_ENDPOINT,
    EARN_FLEXIBLE_POSITION_ENDPOINT,
    FUNDING_ASSET_ENDPOINT,
    FUTURES_ACCOUNT_ENDPOINT,
    MARGIN_ACCOUNT_ENDPOINT,
    SPOT_ACCOUNT_ENDPOINT,
    SUB_ACCOUNT_FUTURES_ENDPOINT,
    SUB_ACCOUNT_LIST_ENDPOINT,
    SUB_ACCOUNT_SPOT_ENDPOINT,
)
from binance_portfolio.http_client import HttpClient
from binance_portfolio.models import ConnectionConfig, PriceTable, RetryConfig


# Configuration fixtures
@pytest.fixture
def connection_config() -> ConnectionConfig:
    """Connection config with test credentials."""
    return ConnectionConfig(
        api_key="test_api_key_0123456789",
        api_secret="test_api_secret_0123456789",
        timeout=5.0,
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    """Retry config without delays."""
    return RetryConfig(max_retries=2, retry_delay=0.0)


# Price fixtures
@pytest.fixture
def ticker_response_data() -> List[Dict[str, Any]]:
    """Mock /api/v3/ticker/price response."""
    return [
        {"symbol": "BTCUSDT", "price": "50000.00"},
        {"symbol": "ETHUSDT", "price": "3000.00"},
        {"symbol": "BNBBUSD", "price": "600.00"},
        {"symbol": "SOLFDUSD", "price": "150.00"},
        {"symbol": "ETHBTC", "price": "0.06"},
    ]


@pytest.fixture
def price_table() -> PriceTable:
    """Price table matching ticker_response_data."""
    return PriceTable({
        "BTCUSDT": Decimal("50000.00"),
        "ETHUSDT": Decimal("3000.00"),
        "BNBBUSD": Decimal("600.00"),
        "SOLFDUSD": Decimal("150.00"),
        "ETHBTC": Decimal("0.06"),
    })


# Account payload fixtures
@pytest.fixture
def spot_response_data() -> Dict[str, Any]:
    """Mock /api/v3/account response."""
    return {
        "makerCommission": 10,
        "canTrade": True,
        "accountType": "SPOT",
        "balances": [
            {"asset": "BTC", "free": "0.5", "locked": "0.1"},
            {"asset": "USDT", "free": "100", "locked": "0"},
            {"asset": "LTC", "free": "0.00000000", "locked": "0.00000000"},
        ],
    }


@pytest.fixture
def margin_response_data() -> Dict[str, Any]:
    """Mock /sapi/v1/margin/account response."""
    return {
        "marginLevel": "11.64405625",
        "totalAssetOfBtc": "6.82728457",
        "userAssets": [
            {"asset": "ETH", "borrowed": "0.5", "free": "2", "interest": "0.001",
             "locked": "0", "netAsset": "1.499"},
            {"asset": "BNB", "borrowed": "0", "free": "0", "interest": "0",
             "locked": "0", "netAsset": "0"},
        ],
    }


@pytest.fixture
def futures_response_data() -> Dict[str, Any]:
    """Mock /fapi/v2/account response."""
    return {
        "totalWalletBalance": "1200.00",
        "assets": [
            {"asset": "USDT", "walletBalance": "1000.00", "availableBalance": "800.00"},
            {"asset": "BNB", "walletBalance": "0.00000000", "availableBalance": "0.00000000"},
            {"asset": "USDC", "walletBalance": "200", "availableBalance": "250"},
        ],
    }


@pytest.fixture
def coin_futures_response_data() -> Dict[str, Any]:
    """Mock /dapi/v1/account response."""
    return {
        "assets": [
            {"asset": "BTC", "walletBalance": "0.1", "availableBalance": "0.08"},
        ],
        "canTrade": True,
    }


@pytest.fixture
def earn_response_data() -> Dict[str, Any]:
    """Mock /sapi/v1/simple-earn/flexible/position response."""
    return {
        "rows": [
            {"asset": "USDC", "totalAmount": "250", "productId": "USDC001"},
            {"asset": "ETH", "totalAmount": "0", "productId": "ETH001"},
        ],
        "total": 2,
    }


@pytest.fixture
def funding_response_data() -> List[Dict[str, Any]]:
    """Mock /sapi/v1/asset/get-funding-asset response."""
    return [
        {"asset": "SOL", "free": "10", "locked": "1", "freeze": "0", "withdrawing": "0"},
        {"asset": "DOGE", "free": "0", "locked": "0"},
        {"asset": "XYZ", "free": "5"},
    ]


@pytest.fixture
def sub_account_list_response_data() -> Dict[str, Any]:
    """Mock /sapi/v1/sub-account/list response."""
    return {
        "subAccounts": [
            {"email": "trader1@example.com", "isFreeze": False, "createTime": 1544433328000},
            {"email": "trader2@example.com", "isFreeze": False, "createTime": 1544433328000},
        ]
    }


@pytest.fixture
def sub_spot_response_data() -> Dict[str, Any]:
    """Mock /sapi/v3/sub-account/assets response."""
    return {
        "balances": [
            {"asset": "ETH", "free": "1", "locked": "0"},
        ]
    }


@pytest.fixture
def sub_futures_response_data() -> Dict[str, Any]:
    """Mock /sapi/v1/sub-account/futures/account response."""
    return {
        "email": "trader1@example.com",
        "asset": "USDT",
        "assets": [
            {"asset": "USDT", "walletBalance": "500", "maxWithdrawAmount": "450",
             "marginBalance": "510", "unrealizedProfit": "10"},
        ],
    }


@pytest.fixture
def endpoint_payloads(
    spot_response_data,
    margin_response_data,
    futures_response_data,
    coin_futures_response_data,
    earn_response_data,
    funding_response_data,
    sub_account_list_response_data,
    sub_spot_response_data,
    sub_futures_response_data,
) -> Dict[str, Any]:
    """Payload per endpoint for a fully populated account."""
    return {
        SPOT_ACCOUNT_ENDPOINT: spot_response_data,
        MARGIN_ACCOUNT_ENDPOINT: margin_response_data,
        FUTURES_ACCOUNT_ENDPOINT: futures_response_data,
        COIN_FUTURES_ACCOUNT_ENDPOINT: coin_futures_response_data,
        EARN_FLEXIBLE_POSITION_ENDPOINT: earn_response_data,
        FUNDING_ASSET_ENDPOINT: funding_response_data,
        SUB_ACCOUNT_LIST_ENDPOINT: sub_account_list_response_data,
        SUB_ACCOUNT_SPOT_ENDPOINT: sub_spot_response_data,
        SUB_ACCOUNT_FUTURES_ENDPOINT: sub_futures_response_data,
    }


def make_router(payloads: Dict[str, Any]) -> Callable:
    """
    Build a side effect for ``HttpClient.request`` that answers per endpoint.

    A payload that is an exception instance is raised instead of returned.
    """
    async def route(session, method, base_url, endpoint, params=None, signed=True):
        payload = payloads[endpoint]
        if isinstance(payload, Exception):
            raise payload
        return payload

    return route


@pytest.fixture
def mock_http_client() -> Mock:
    """HttpClient double whose request() is an AsyncMock."""
    client = Mock(spec=HttpClient)
    client.request = AsyncMock()
    return client


@pytest.fixture
def mock_client_session():
    """Mock aiohttp ClientSession."""
    session = Mock(spec=aiohttp.ClientSession)
    session.close = AsyncMock()
    session.closed = False
    return session


@pytest.fixture
def router() -> Callable[[Dict[str, Any]], Callable]:
    """Factory for per-endpoint request side effects."""
    return make_router
