"""
Account-related models for the portfolio aggregator.

Immutable data structures for balances, per-account snapshots and the
consolidated portfolio.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class AccountType(str, Enum):
    """Balance-bearing account kinds."""
    SPOT = "spot"
    MARGIN = "margin"
    FUTURES = "futures"
    COIN_FUTURES = "coin_futures"
    EARN = "earn"
    FUNDING = "funding"
    SUB_SPOT = "sub_spot"
    SUB_FUTURES = "sub_futures"


@dataclass(frozen=True)
class Balance:
    """One asset's holding within one account."""
    asset: str
    free: Decimal
    locked: Decimal
    total: Decimal
    usd_value: Decimal
    unvalued: bool = False  # non-zero holding with no resolvable USD price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset": self.asset,
            "free": float(self.free),
            "locked": float(self.locked),
            "total": float(self.total),
            "usdValue": float(self.usd_value),
            "unvalued": self.unvalued,
        }


@dataclass(frozen=True)
class AccountSnapshot:
    """
    One product line's (or one sub-account product line's) view.

    Balances are kept sorted by descending USD value; the sort is stable so
    equal values keep the order the exchange returned them in.
    """
    account_type: AccountType
    account_name: str
    balances: Tuple[Balance, ...] = ()
    total_usd_value: Decimal = Decimal("0")

    @classmethod
    def build(
        cls,
        account_type: AccountType,
        account_name: str,
        balances: List[Balance],
    ) -> "AccountSnapshot":
        """Sort balances and compute the USD total."""
        ordered = tuple(sorted(balances, key=lambda b: b.usd_value, reverse=True))
        total = sum((b.usd_value for b in ordered), Decimal("0"))
        return cls(
            account_type=account_type,
            account_name=account_name,
            balances=ordered,
            total_usd_value=total,
        )

    @classmethod
    def empty(cls, account_type: AccountType, account_name: str) -> "AccountSnapshot":
        return cls(account_type=account_type, account_name=account_name)

    @property
    def is_empty(self) -> bool:
        return not self.balances

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accountType": self.account_type.value,
            "accountName": self.account_name,
            "balances": [b.to_dict() for b in self.balances],
            "totalUsdValue": float(self.total_usd_value),
        }


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of a single product-line fetch.

    A failed fetch still carries an empty snapshot of the right type and
    name, together with the reason it failed.
    """
    source: str
    snapshot: AccountSnapshot
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, source: str, snapshot: AccountSnapshot) -> "FetchResult":
        return cls(source=source, snapshot=snapshot)

    @classmethod
    def failed(
        cls,
        source: str,
        account_type: AccountType,
        account_name: str,
        reason: str,
    ) -> "FetchResult":
        return cls(
            source=source,
            snapshot=AccountSnapshot.empty(account_type, account_name),
            error=reason,
        )


@dataclass(frozen=True)
class FetchFailure:
    """A fetch that degraded to missing data."""
    source: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"source": self.source, "reason": self.reason}


@dataclass(frozen=True)
class PortfolioScope:
    """Accounts of one scope (master or sub-accounts) with their total."""
    accounts: Tuple[AccountSnapshot, ...] = ()
    total_usd_value: Decimal = Decimal("0")

    @classmethod
    def from_snapshots(cls, snapshots: List[AccountSnapshot]) -> "PortfolioScope":
        """Keep non-empty snapshots and sum their totals."""
        kept = tuple(s for s in snapshots if not s.is_empty)
        total = sum((s.total_usd_value for s in kept), Decimal("0"))
        return cls(accounts=kept, total_usd_value=total)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accounts": [a.to_dict() for a in self.accounts],
            "totalUsdValue": float(self.total_usd_value),
        }


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Consolidated result of one aggregation cycle."""
    master: PortfolioScope
    sub_accounts: PortfolioScope
    grand_total: Decimal
    timestamp: str
    failures: Tuple[FetchFailure, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "master": self.master.to_dict(),
            "subAccounts": self.sub_accounts.to_dict(),
            "grandTotal": float(self.grand_total),
            "timestamp": self.timestamp,
            "failures": [f.to_dict() for f in self.failures],
        }
