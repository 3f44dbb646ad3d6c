"""
Configuration models for the portfolio aggregator.

Immutable configuration structures following state-first design.
"""

from dataclasses import dataclass

from ..constants import (
    DEFAULT_COIN_FUTURES_BASE_URL,
    DEFAULT_FUTURES_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RECV_WINDOW,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SPOT_BASE_URL,
    DEFAULT_TIMEOUT,
)
from ..utils import validate_url


class ConfigurationError(ValueError):
    """Raised when credentials or connection settings are unusable."""
    pass


@dataclass(frozen=True)
class ConnectionConfig:
    """Configuration for Binance API connections."""
    api_key: str
    api_secret: str
    spot_base_url: str = DEFAULT_SPOT_BASE_URL
    futures_base_url: str = DEFAULT_FUTURES_BASE_URL
    coin_futures_base_url: str = DEFAULT_COIN_FUTURES_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    recv_window: int = DEFAULT_RECV_WINDOW

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_credentials()
        self._validate_urls()
        self._validate_limits()

    def _validate_credentials(self):
        """Both halves of the key pair must be present."""
        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError("API key cannot be empty")
        if not self.api_secret or not self.api_secret.strip():
            raise ConfigurationError("API secret cannot be empty")

    def _validate_urls(self):
        for name in ("spot_base_url", "futures_base_url", "coin_futures_base_url"):
            if not validate_url(getattr(self, name)):
                raise ConfigurationError(f"{name} must be a valid HTTP/HTTPS URL")

    def _validate_limits(self):
        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")

        # Binance rejects recvWindow above 60000
        if not 0 < self.recv_window <= 60000:
            raise ConfigurationError(
                f"recv_window must be between 1 and 60000 ms, got {self.recv_window}"
            )


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for request retry behavior."""
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    backoff_factor: float = 2.0
    retry_on_status: tuple[int, ...] = (429, 500, 502, 503, 504)
