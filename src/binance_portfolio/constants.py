"""
Constants for the Binance portfolio aggregator.
"""

# API Configuration
DEFAULT_SPOT_BASE_URL = "https://api.binance.com"
DEFAULT_FUTURES_BASE_URL = "https://fapi.binance.com"
DEFAULT_COIN_FUTURES_BASE_URL = "https://dapi.binance.com"
DEFAULT_TIMEOUT = 10.0
DEFAULT_RETRY_DELAY = 0.5
DEFAULT_MAX_RETRIES = 2
CONNECTIONS_PER_HOST = 20
USER_AGENT = "binance-portfolio/0.1"

# Authentication Configuration
DEFAULT_RECV_WINDOW = 5000  # milliseconds
API_KEY_HEADER = "X-MBX-APIKEY"

# Sub-account fan-out
DEFAULT_MAX_CONCURRENT_SUB_ACCOUNTS = 5
SUB_ACCOUNT_LIST_LIMIT = 200

# Valuation
STABLECOINS = frozenset({"USDT", "USDC", "BUSD", "FDUSD", "USD1", "USDE"})
QUOTE_FALLBACK_ORDER = ("USDT", "BUSD", "FDUSD")

# Endpoints
TICKER_PRICE_ENDPOINT = "/api/v3/ticker/price"
SPOT_ACCOUNT_ENDPOINT = "/api/v3/account"
MARGIN_ACCOUNT_ENDPOINT = "/sapi/v1/margin/account"
FUTURES_ACCOUNT_ENDPOINT = "/fapi/v2/account"
COIN_FUTURES_ACCOUNT_ENDPOINT = "/dapi/v1/account"
EARN_FLEXIBLE_POSITION_ENDPOINT = "/sapi/v1/simple-earn/flexible/position"
FUNDING_ASSET_ENDPOINT = "/sapi/v1/asset/get-funding-asset"
SUB_ACCOUNT_LIST_ENDPOINT = "/sapi/v1/sub-account/list"
SUB_ACCOUNT_SPOT_ENDPOINT = "/sapi/v3/sub-account/assets"
SUB_ACCOUNT_FUTURES_ENDPOINT = "/sapi/v1/sub-account/futures/account"
