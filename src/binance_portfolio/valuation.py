"""
USD valuation of asset quantities against a price table.
"""

from decimal import Decimal
from typing import AbstractSet, Iterable, Optional

from .constants import QUOTE_FALLBACK_ORDER, STABLECOINS
from .models.account import Balance
from .models.market import PriceTable

ZERO = Decimal("0")
ONE = Decimal("1")


def resolve_usd_price(
    asset: str,
    table: PriceTable,
    stablecoins: AbstractSet[str] = STABLECOINS,
    quotes: Iterable[str] = QUOTE_FALLBACK_ORDER,
) -> Optional[Decimal]:
    """
    USD price of one unit of ``asset``, or None if it cannot be priced.

    Stablecoins are pegged 1:1. Other assets use the first of
    ``<asset>USDT``, ``<asset>BUSD``, ``<asset>FDUSD`` present in the table.
    """
    if asset in stablecoins:
        return ONE

    for quote in quotes:
        price = table.get(f"{asset}{quote}")
        if price is not None:
            return price

    return None


def value_usd(
    asset: str,
    quantity: Decimal,
    table: PriceTable,
    stablecoins: AbstractSet[str] = STABLECOINS,
) -> Decimal:
    """
    USD value of ``quantity`` units of ``asset``.

    Zero quantities short-circuit before any lookup. Assets with no usable
    pair are worth zero rather than raising.
    """
    if quantity == 0:
        return ZERO

    if asset in stablecoins:
        return quantity

    price = resolve_usd_price(asset, table, stablecoins)
    if price is None:
        return ZERO
    return quantity * price


def make_balance(
    asset: str,
    free: Decimal,
    locked: Decimal,
    total: Decimal,
    table: PriceTable,
) -> Balance:
    """Value a normalized holding and flag it when no price was found."""
    usd_value = value_usd(asset, total, table)
    unvalued = total != 0 and resolve_usd_price(asset, table) is None
    return Balance(
        asset=asset,
        free=free,
        locked=locked,
        total=total,
        usd_value=usd_value,
        unvalued=unvalued,
    )
