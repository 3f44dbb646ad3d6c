"""
Market data models for the portfolio aggregator.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional


@dataclass(frozen=True)
class PriceTable:
    """
    Read-only symbol -> price lookup built from the ticker list.

    Rebuilt every aggregation cycle and shared by all fetchers without
    locking, since nothing mutates it after construction.
    """
    prices: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "prices", MappingProxyType(dict(self.prices)))

    def get(self, symbol: str) -> Optional[Decimal]:
        return self.prices.get(symbol)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.prices

    def __getitem__(self, symbol: str) -> Decimal:
        return self.prices[symbol]

    def __iter__(self) -> Iterator[str]:
        return iter(self.prices)

    def __len__(self) -> int:
        return len(self.prices)

    def to_dict(self) -> Dict[str, float]:
        return {symbol: float(price) for symbol, price in self.prices.items()}
