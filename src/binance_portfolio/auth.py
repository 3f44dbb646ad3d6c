"""
Authentication and signing utilities for the Binance API
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import hashlib
import hmac
import time
from urllib.parse import urlencode

from .constants import API_KEY_HEADER, DEFAULT_RECV_WINDOW


def sign(query_string: str, secret: str) -> str:
    """
    HMAC-SHA256 of the query string keyed by the secret.

    Args:
        query_string: Exact query string that will be sent
        secret: API secret

    Returns:
        Lowercase hex digest
    """
    return hmac.new(
        secret.encode("utf-8"),
        query_string.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


@dataclass(frozen=True)
class ApiCredentials:
    """API key pair; the secret is left out of the repr."""
    api_key: str
    api_secret: str = field(repr=False)


class BinanceSigner:
    """
    Handles request signing for Binance API authentication.

    The signature is computed over the query string exactly as it is sent,
    so parameter order is preserved rather than sorted.
    """

    def __init__(self, credentials: ApiCredentials, recv_window: int = DEFAULT_RECV_WINDOW):
        """
        Initialize the signer with API credentials.

        Args:
            credentials: API credentials containing key and secret
            recv_window: Receive window in milliseconds (default: 5000)
        """
        self.credentials = credentials
        self.recv_window = recv_window

    def signed_query(self, params: Optional[Dict[str, Any]] = None) -> str:
        """
        Build a signed query string.

        The timestamp is taken right before signing so that the request
        reaches the exchange well inside the receive window.

        Args:
            params: Request parameters (without timestamp/signature)

        Returns:
            Query string ending in ``&signature=<hex>``
        """
        pairs: List[Tuple[str, Any]] = list((params or {}).items())
        pairs.append(("recvWindow", self.recv_window))
        pairs.append(("timestamp", int(time.time() * 1000)))

        query_string = urlencode(pairs)
        signature = sign(query_string, self.credentials.api_secret)

        return f"{query_string}&signature={signature}"

    def get_auth_headers(self) -> Dict[str, str]:
        """Header identifying the API key; the secret is only used for signing."""
        return {API_KEY_HEADER: self.credentials.api_key}
