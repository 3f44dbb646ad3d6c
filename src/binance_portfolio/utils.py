"""
Utility functions for the portfolio aggregator.

Helper functions and utilities following functional programming principles.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Union


def to_decimal(value: Union[Decimal, float, int, str, None]) -> Decimal:
    """
    Convert an exchange numeric field to Decimal.

    Exchange payloads carry quantities as decimal strings; going through
    ``str`` keeps floats from leaking binary rounding into the result.

    Raises:
        ValueError: If the value is missing or not a finite number
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a decimal value: {value!r}")

    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a decimal value: {value!r}") from e

    if not result.is_finite():
        raise ValueError(f"Not a finite decimal value: {value!r}")
    return result


def local_part(identifier: str) -> str:
    """Text before the first ``@`` of an email-shaped identifier."""
    head, sep, _ = identifier.partition("@")
    return head if sep and head else identifier


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_url(url: str) -> bool:
    """Validate URL format."""
    if not url or not isinstance(url, str):
        return False
    return url.startswith(("http://", "https://")) and "." in url
