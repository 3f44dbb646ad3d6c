# -*- coding: utf-8 -*-
"""
Tests for the signed HTTP client: URL construction, retries and error mapping.
"""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock, Mock, call, patch
from urllib.parse import parse_qsl

import aiohttp
from yarl import URL

from binance_portfolio.http_client import (
    HttpClient,
    HttpClientClientError,
    HttpClientError,
    HttpServerError,
)
from binance_portfolio.models import RetryConfig

BASE_URL = "https://api.binance.com"


def make_response(status: int, body) -> Mock:
    """Mock aiohttp response whose text() returns ``body`` (JSON-encoded unless a str)."""
    response = Mock()
    response.status = status
    text = body if isinstance(body, str) else json.dumps(body)
    response.text = AsyncMock(return_value=text)
    return response


def as_context(response) -> MagicMock:
    ctx = MagicMock()
    ctx.__aenter__.return_value = response
    ctx.__aexit__.return_value = False
    return ctx


def make_session(*outcomes) -> Mock:
    """Session whose request() yields each outcome in turn; exceptions are raised."""
    session = Mock(spec=aiohttp.ClientSession)
    session.request = Mock(side_effect=[
        o if isinstance(o, BaseException) else as_context(o) for o in outcomes
    ])
    return session


@pytest.fixture
def http_client(connection_config, retry_config):
    return HttpClient(connection_config, retry_config)


class TestBuildUrl:
    """Test request URL construction."""

    def test_signed_url(self, http_client):
        url = http_client._build_url(BASE_URL, "/api/v3/account", {"omitZeroBalances": "true"}, True)

        assert isinstance(url, URL)
        assert str(url).startswith(f"{BASE_URL}/api/v3/account?omitZeroBalances=true&recvWindow=5000&timestamp=")
        keys = [k for k, _ in parse_qsl(url.raw_query_string)]
        assert keys == ["omitZeroBalances", "recvWindow", "timestamp", "signature"]

    def test_signed_url_keeps_encoding(self, http_client):
        """Test the query goes out exactly as it was signed."""
        url = http_client._build_url(
            BASE_URL, "/sapi/v3/sub-account/assets", {"email": "trader1@example.com"}, True
        )

        assert url.raw_query_string.startswith("email=trader1%40example.com&")

    def test_unsigned_url(self, http_client):
        url = http_client._build_url(BASE_URL + "/", "/api/v3/ticker/price", None, False)

        assert str(url) == f"{BASE_URL}/api/v3/ticker/price"

    def test_unsigned_url_with_params(self, http_client):
        url = http_client._build_url(BASE_URL, "/api/v3/ticker/price", {"symbol": "BTCUSDT"}, False)

        assert str(url) == f"{BASE_URL}/api/v3/ticker/price?symbol=BTCUSDT"


class TestRequest:
    """Test request execution."""

    @pytest.mark.asyncio
    async def test_success(self, http_client):
        session = make_session(make_response(200, {"balances": []}))

        result = await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert result == {"balances": []}
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url.path == "/api/v3/account"
        assert session.request.call_args.kwargs["headers"] == {
            "X-MBX-APIKEY": "test_api_key_0123456789"
        }

    @pytest.mark.asyncio
    async def test_list_payload(self, http_client):
        session = make_session(make_response(200, [{"asset": "SOL", "free": "1"}]))

        result = await http_client.request(session, "POST", BASE_URL, "/sapi/v1/asset/get-funding-asset")

        assert result == [{"asset": "SOL", "free": "1"}]
        assert session.request.call_args.args[0] == "POST"

    @pytest.mark.asyncio
    async def test_unsigned_has_no_key_header(self, http_client):
        session = make_session(make_response(200, []))

        await http_client.request(session, "GET", BASE_URL, "/api/v3/ticker/price", signed=False)

        assert session.request.call_args.kwargs["headers"] == {}
        assert "signature" not in str(session.request.call_args.args[1])

    @pytest.mark.asyncio
    async def test_empty_body(self, http_client):
        session = make_session(make_response(200, ""))

        result = await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert result == {"status": 200, "data": None}

    @pytest.mark.asyncio
    async def test_invalid_json(self, http_client):
        session = make_session(make_response(200, "<html>oops</html>"))

        with pytest.raises(HttpClientError, match="Invalid JSON response"):
            await http_client.request(session, "GET", BASE_URL, "/api/v3/account")


class TestRetries:
    """Test retry and backoff behaviour."""

    @pytest.mark.asyncio
    async def test_retry_on_server_error_then_success(self, http_client):
        session = make_session(
            make_response(503, {"msg": "busy"}),
            make_response(200, {"ok": True}),
        )

        result = await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert result == {"ok": True}
        assert session.request.call_count == 2

    @pytest.mark.asyncio
    async def test_html_gateway_error_retried(self, http_client):
        """Test a non-JSON 502 page is retried like any other server error."""
        session = make_session(
            make_response(502, "<html>502 Bad Gateway</html>"),
            make_response(200, {"balances": []}),
        )

        result = await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert result == {"balances": []}
        assert session.request.call_count == 2

    @pytest.mark.asyncio
    async def test_html_gateway_error_exhausted(self, http_client):
        session = make_session(*(make_response(503, "<html>busy</html>") for _ in range(3)))

        with pytest.raises(HttpServerError) as exc_info:
            await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert exc_info.value.status_code == 503
        assert exc_info.value.response_data == "<html>busy</html>"
        assert session.request.call_count == 3

    @pytest.mark.asyncio
    async def test_each_attempt_resigned(self, http_client):
        """Test a fresh timestamp is signed for every attempt."""
        session = make_session(
            make_response(429, {"msg": "slow down"}),
            make_response(200, {"ok": True}),
        )

        with patch("binance_portfolio.auth.time") as mock_time:
            mock_time.time.side_effect = [1700000000.0, 1700000001.0]
            await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        first, second = (c.args[1] for c in session.request.call_args_list)
        assert dict(parse_qsl(first.raw_query_string))["timestamp"] == "1700000000000"
        assert dict(parse_qsl(second.raw_query_string))["timestamp"] == "1700000001000"

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, http_client):
        session = make_session(*(make_response(500, {"msg": "error"}) for _ in range(3)))

        with pytest.raises(HttpServerError) as exc_info:
            await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert exc_info.value.status_code == 500
        assert session.request.call_count == 3

    @pytest.mark.asyncio
    async def test_network_errors_wrapped(self, http_client):
        session = make_session(
            aiohttp.ClientConnectionError("reset"),
            asyncio.TimeoutError(),
            aiohttp.ClientConnectionError("reset"),
        )

        with pytest.raises(HttpClientError, match="failed after 3 attempts"):
            await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

    @pytest.mark.asyncio
    async def test_exponential_backoff(self, connection_config):
        client = HttpClient(connection_config, RetryConfig(max_retries=2, retry_delay=0.5))
        session = make_session(*(make_response(502, {}) for _ in range(3)))

        with patch("binance_portfolio.http_client.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(HttpServerError):
                await client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert mock_sleep.await_args_list == [call(0.5), call(1.0)]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, http_client):
        session = make_session(make_response(400, {"code": -1102, "msg": "Mandatory parameter"}))

        with pytest.raises(HttpClientClientError) as exc_info:
            await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert exc_info.value.status_code == 400
        assert exc_info.value.response_data["code"] == -1102
        assert session.request.call_count == 1


class TestAuthErrors:
    """Test credential-related error hints."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code, hint", [
        (-2014, "API key format is invalid"),
        (-2015, "Invalid API key, IP, or permissions"),
        (-1022, "Invalid signature"),
        (-1021, "Timestamp outside of recvWindow"),
    ])
    async def test_auth_hint(self, http_client, code, hint):
        session = make_session(make_response(401, {"code": code, "msg": "rejected"}))

        with pytest.raises(HttpClientClientError, match="Authentication failed") as exc_info:
            await http_client.request(session, "GET", BASE_URL, "/api/v3/account")

        assert hint in str(exc_info.value)
        assert "rejected" in str(exc_info.value)
