"""
Boundary validation and normalization of exchange payloads.

Every product line reports holdings in its own shape. The functions here
check that shape and reduce it to ``Holding`` rows with a common meaning.
A payload that does not match is rejected as a whole with
``ResponseDecodeError``; nothing downstream ever sees a half-parsed response.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .models.market import PriceTable
from .utils import to_decimal

ZERO = Decimal("0")


class ResponseDecodeError(ValueError):
    """Raised when an exchange payload does not have the expected shape."""
    pass


@dataclass(frozen=True)
class Holding:
    """Normalized, not yet valued, holding of one asset."""
    asset: str
    free: Decimal
    locked: Decimal
    total: Decimal


def _require_dict(payload: Any, context: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ResponseDecodeError(f"{context}: expected an object, got {type(payload).__name__}")
    return payload


def _require_list(payload: Any, key: Optional[str], context: str) -> List[Any]:
    """Return ``payload[key]`` (or ``payload`` itself when key is None) as a list."""
    if key is not None:
        payload = _require_dict(payload, context).get(key)
        context = f"{context}.{key}"
    if not isinstance(payload, list):
        raise ResponseDecodeError(f"{context}: expected a list, got {type(payload).__name__}")
    return payload


def _require_asset(row: Any, context: str, key: str = "asset") -> str:
    row = _require_dict(row, context)
    asset = row.get(key)
    if not isinstance(asset, str) or not asset:
        raise ResponseDecodeError(f"{context}: missing '{key}'")
    return asset


def _decimal_field(row: Dict[str, Any], key: str, context: str, default: Optional[Decimal] = None) -> Decimal:
    if key not in row or row[key] is None:
        if default is not None:
            return default
        raise ResponseDecodeError(f"{context}: missing '{key}'")
    try:
        return to_decimal(row[key])
    except ValueError as e:
        raise ResponseDecodeError(f"{context}: invalid '{key}': {row[key]!r}") from e


def _free_locked_rows(rows: List[Any], context: str) -> List[Holding]:
    """Rows reporting a free/locked split; total is their sum."""
    holdings = []
    for row in rows:
        asset = _require_asset(row, context)
        free = _decimal_field(row, "free", context)
        locked = _decimal_field(row, "locked", context)
        if free > 0 or locked > 0:
            holdings.append(Holding(asset, free, locked, free + locked))
    return holdings


def _wallet_rows(rows: List[Any], context: str) -> List[Holding]:
    """
    Futures-style rows reporting only a wallet balance.

    The available balance is the free part; whatever the wallet holds beyond
    it is committed to positions and counted as locked.
    """
    holdings = []
    for row in rows:
        asset = _require_asset(row, context)
        wallet = _decimal_field(row, "walletBalance", context)
        if wallet <= 0:
            continue
        if "availableBalance" in row:
            available = _decimal_field(row, "availableBalance", context)
        else:
            available = _decimal_field(row, "maxWithdrawAmount", context, default=ZERO)
        # Negative available balances show up under unrealized losses
        available = max(available, ZERO)
        locked = max(wallet - available, ZERO)
        holdings.append(Holding(asset, available, locked, wallet))
    return holdings


def normalize_spot(payload: Any) -> List[Holding]:
    """``GET /api/v3/account``: ``balances[{asset, free, locked}]``."""
    return _free_locked_rows(_require_list(payload, "balances", "spot"), "spot")


def normalize_margin(payload: Any) -> List[Holding]:
    """``GET /sapi/v1/margin/account``; borrowed and interest are ignored."""
    return _free_locked_rows(_require_list(payload, "userAssets", "margin"), "margin")


def normalize_futures(payload: Any) -> List[Holding]:
    """``GET /fapi/v2/account``: ``assets[{asset, walletBalance, availableBalance}]``."""
    return _wallet_rows(_require_list(payload, "assets", "futures"), "futures")


def normalize_coin_futures(payload: Any) -> List[Holding]:
    """``GET /dapi/v1/account``: same asset shape as USD-M futures."""
    return _wallet_rows(_require_list(payload, "assets", "coin_futures"), "coin_futures")


def normalize_earn(payload: Any) -> List[Holding]:
    """Simple-earn flexible positions, treated as fully liquid."""
    holdings = []
    for row in _require_list(payload, "rows", "earn"):
        asset = _require_asset(row, "earn")
        total = _decimal_field(row, "totalAmount", "earn")
        if total > 0:
            holdings.append(Holding(asset, total, ZERO, total))
    return holdings


def parse_earn_page(payload: Any) -> Tuple[List[Any], Optional[int]]:
    """One page of flexible positions: its raw rows and the reported ``total``."""
    rows = _require_list(payload, "rows", "earn")
    total = payload.get("total")
    return rows, total if isinstance(total, int) else None


def normalize_funding(payload: Any) -> List[Holding]:
    """Funding wallet; ``locked`` is optional in this payload."""
    holdings = []
    for row in _require_list(payload, None, "funding"):
        asset = _require_asset(row, "funding")
        free = _decimal_field(row, "free", "funding")
        if free <= 0:
            continue
        locked = _decimal_field(row, "locked", "funding", default=ZERO)
        holdings.append(Holding(asset, free, locked, free + locked))
    return holdings


def normalize_sub_spot(payload: Any) -> List[Holding]:
    """``GET /sapi/v3/sub-account/assets``: spot shape."""
    return _free_locked_rows(_require_list(payload, "balances", "sub_spot"), "sub_spot")


def normalize_sub_futures(payload: Any) -> List[Holding]:
    """``GET /sapi/v1/sub-account/futures/account``: wallet shape."""
    return _wallet_rows(_require_list(payload, "assets", "sub_futures"), "sub_futures")


def parse_sub_account_list(payload: Any) -> List[str]:
    """``GET /sapi/v1/sub-account/list``: emails of every sub-account."""
    return [
        _require_asset(row, "sub_account_list", key="email")
        for row in _require_list(payload, "subAccounts", "sub_account_list")
    ]


def parse_ticker_prices(payload: Any) -> PriceTable:
    """``GET /api/v3/ticker/price``: ``[{symbol, price}]`` into a price table."""
    prices = {}
    for row in _require_list(payload, None, "ticker"):
        symbol = _require_asset(row, "ticker", key="symbol")
        prices[symbol] = _decimal_field(row, "price", "ticker")
    return PriceTable(prices)
