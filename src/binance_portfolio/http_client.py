"""
HTTP client for the Binance API.

Handles request execution, retry logic, authentication, and response processing.
Follows pure core/impure edges principle with clean separation of concerns.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Union

import aiohttp
from aiohttp import ClientResponse, ClientSession
from urllib.parse import urlencode
from yarl import URL

from .auth import ApiCredentials, BinanceSigner
from .models.config import ConnectionConfig, RetryConfig

logger = logging.getLogger(__name__)

JsonPayload = Union[Dict[str, Any], list]

# Binance error codes that point at the credentials rather than the request
_AUTH_ERROR_HINTS = {
    -2014: "API key format is invalid. Please check your BINANCE_API_KEY environment variable.",
    -2015: "Invalid API key, IP, or permissions for action. "
           "Please check BINANCE_API_KEY, its enabled permissions and any IP whitelist settings.",
    -1022: "Invalid signature. Please check your BINANCE_SECRET_KEY environment variable.",
    -1021: "Timestamp outside of recvWindow. Please check the system clock.",
}


class HttpClient:
    """HTTP client specialized for Binance API interactions."""

    def __init__(
        self,
        config: ConnectionConfig,
        retry_config: Optional[RetryConfig] = None,
    ):
        """Initialize HTTP client with configuration."""
        self._config = config
        self._retry_config = retry_config or RetryConfig()
        self._signer = BinanceSigner(
            ApiCredentials(config.api_key, config.api_secret),
            recv_window=config.recv_window,
        )

    async def request(
        self,
        session: ClientSession,
        method: str,
        base_url: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        signed: bool = True,
    ) -> JsonPayload:
        """Execute HTTP request with retry logic and authentication."""
        headers = self._signer.get_auth_headers() if signed else {}
        last_exception: Optional[Exception] = None

        for attempt in range(self._retry_config.max_retries + 1):
            # Re-sign on every attempt so the timestamp stays fresh
            url = self._build_url(base_url, endpoint, params, signed)

            try:
                async with session.request(method, url, headers=headers) as response:
                    response_data = await self._process_response(response)

                    if response.status < 400:
                        return response_data

                    if response.status in self._retry_config.retry_on_status:
                        raise HttpServerError(
                            f"Server error {response.status}: {response_data}",
                            status_code=response.status,
                            response_data=response_data,
                        )

                    raise self._client_error(response.status, response_data)

            except (HttpServerError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e

                # Don't retry on the last attempt
                if attempt == self._retry_config.max_retries:
                    break

                # Calculate delay with exponential backoff
                delay = self._retry_config.retry_delay * (
                    self._retry_config.backoff_factor ** attempt
                )
                logger.debug(f"{method} {endpoint} failed ({e!r}), retrying in {delay:.2f}s")
                await asyncio.sleep(delay)

        # All retries exhausted
        if isinstance(last_exception, HttpClientError):
            raise last_exception
        raise HttpClientError(
            f"Request to {endpoint} failed after {self._retry_config.max_retries + 1} attempts: "
            f"{last_exception!r}"
        ) from last_exception

    def _build_url(
        self,
        base_url: str,
        endpoint: str,
        params: Optional[Dict[str, Any]],
        signed: bool,
    ) -> URL:
        """Build the request URL, keeping the query string byte-for-byte as signed."""
        if signed:
            query_string = self._signer.signed_query(params)
        else:
            query_string = urlencode(list((params or {}).items()))

        url = f"{base_url.rstrip('/')}{endpoint}"
        if query_string:
            url = f"{url}?{query_string}"
        return URL(url, encoded=True)

    def _client_error(self, status: int, response_data: Any) -> "HttpClientClientError":
        """Map a non-retryable response to an error with a helpful message."""
        if isinstance(response_data, dict):
            code = response_data.get("code")
            msg = response_data.get("msg", "Unknown error")
            hint = _AUTH_ERROR_HINTS.get(code)
            if hint:
                return HttpClientClientError(
                    f"Authentication failed: {hint} Server error: {msg}",
                    status_code=status,
                    response_data=response_data,
                )

        return HttpClientClientError(
            f"Client error {status}: {response_data}",
            status_code=status,
            response_data=response_data,
        )

    async def _process_response(self, response: ClientResponse) -> JsonPayload:
        """Process HTTP response and return data."""
        response_text = await response.text()

        if not response_text:
            return {"status": response.status, "data": None}

        try:
            return json.loads(response_text)
        except json.JSONDecodeError as e:
            # Gateway error pages are HTML; keep them retryable
            if response.status in self._retry_config.retry_on_status:
                raise HttpServerError(
                    f"Server error {response.status}: {response_text[:200]}",
                    status_code=response.status,
                    response_data=response_text,
                ) from e
            raise HttpClientError(
                f"Invalid JSON response (Status {response.status}): {response_text[:200]}",
                status_code=response.status,
            ) from e


class HttpClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class HttpServerError(HttpClientError):
    """Exception for server errors (5xx) and rate limiting."""
    pass


class HttpClientClientError(HttpClientError):
    """Exception for client errors (4xx)."""
    pass
