"""Shared utilities used across the booking engine."""

import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# ISO 4217 currencies without a minor unit
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "CLP", "ISK", "HUF"})


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.utcoffset() is not None


def generate_reference() -> str:
    """Human-readable booking reference, e.g. ``BK-3F9A1C``."""
    return f"BK-{uuid.uuid4().hex[:6].upper()}"


def round_minor(value: Union[Decimal, int]) -> int:
    """Round a Decimal amount half-up to whole minor units."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_minor_units(amount: Union[str, Decimal, int], currency: str = "EUR") -> int:
    """Convert a display amount to integer minor units.

    Examples:
        >>> to_minor_units("120.50")
        12050
        >>> to_minor_units("500", "JPY")
        500
    """
    exponent = 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2
    return round_minor(Decimal(str(amount)) * (10 ** exponent))


def format_money(amount: int, currency: str = "EUR") -> str:
    """Format integer minor units for display.

    This is the only place minor units become a decimal figure.

    Examples:
        >>> format_money(12050)
        '120.50 EUR'
        >>> format_money(-5)
        '-0.05 EUR'
    """
    code = currency.upper()
    if code in ZERO_DECIMAL_CURRENCIES:
        return f"{amount} {code}"
    sign = "-" if amount < 0 else ""
    whole, cents = divmod(abs(amount), 100)
    return f"{sign}{whole}.{cents:02d} {code}"
