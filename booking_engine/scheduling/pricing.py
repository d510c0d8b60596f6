"""
Booking price calculation.

Pure functions over integer minor units (cents). The only non-integer
value is the duration, which is multiplied as a Decimal and rounded
half-up once. Conversion to display currency happens in
``booking_engine.utils.format_money`` and nowhere else.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Union

from booking_engine.scheduling.errors import InvalidInputError
from booking_engine.schemas.booking_schema import Extra, PriceBreakdown
from booking_engine.schemas.provider_schema import DepositPolicy, ServiceLine
from booking_engine.utils import round_minor

logger = logging.getLogger(__name__)

Hours = Union[int, float, str, Decimal]


def _to_hours(duration_hours: Hours) -> Decimal:
    try:
        hours = Decimal(str(duration_hours))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"Invalid duration: {duration_hours!r}") from None
    if not hours.is_finite():
        raise InvalidInputError(f"Invalid duration: {duration_hours!r}")
    return hours


def compute_total(
    hourly_rate: int,
    duration_hours: Hours,
    extras: Iterable[Extra] = (),
    deposit_policy: DepositPolicy = DepositPolicy(),
    services: Iterable[ServiceLine] = (),
    platform_fee: int = 0,
    currency: str = "EUR",
) -> PriceBreakdown:
    """
    Compute the itemized price of a booking.

    Args:
        hourly_rate: Provider's rate in minor units per hour.
        duration_hours: Engagement length in hours; fractional values allowed.
        extras: Add-ons charged at their listed price.
        deposit_policy: Whether a deposit is due and how much.
        services: Snapshotted service lines; their price is a surcharge.
        platform_fee: Explicit additive fee line, never folded into the rate.
        currency: ISO code recorded on the breakdown.

    Returns:
        A PriceBreakdown whose ``total`` is the sum of its line items.

    Raises:
        InvalidInputError: On non-positive duration, negative rate or
            prices, or a deposit larger than the total.
    """
    hours = _to_hours(duration_hours)
    if hours <= 0:
        raise InvalidInputError(f"Duration must be positive, got {duration_hours}")
    if hourly_rate < 0:
        raise InvalidInputError(f"Hourly rate must not be negative, got {hourly_rate}")
    if platform_fee < 0:
        raise InvalidInputError(f"Platform fee must not be negative, got {platform_fee}")

    extras = list(extras)
    services = list(services)
    for item in [*extras, *services]:
        if item.price < 0:
            raise InvalidInputError(f"Price for '{item.name}' must not be negative")

    subtotal = round_minor(Decimal(hourly_rate) * hours)
    services_total = sum(s.price for s in services)
    extras_total = sum(e.price for e in extras)
    total = subtotal + services_total + extras_total + platform_fee

    deposit = None
    if deposit_policy.required:
        if deposit_policy.amount < 0:
            raise InvalidInputError(
                f"Deposit must not be negative, got {deposit_policy.amount}"
            )
        if deposit_policy.amount > total:
            raise InvalidInputError(
                f"Deposit {deposit_policy.amount} exceeds booking total {total}"
            )
        deposit = deposit_policy.amount

    logger.debug(
        "Priced %s h at %d: subtotal=%d services=%d extras=%d fee=%d total=%d",
        hours, hourly_rate, subtotal, services_total, extras_total, platform_fee, total,
    )
    return PriceBreakdown(
        currency=currency,
        subtotal=subtotal,
        services_total=services_total,
        extras_total=extras_total,
        platform_fee=platform_fee,
        total=total,
        deposit=deposit,
    )


class PriceCalculator:
    """Binds the configured currency and platform fee to ``compute_total``."""

    def __init__(self, currency: str = "EUR", platform_fee: int = 0) -> None:
        self.currency = currency
        self.platform_fee = platform_fee

    def compute_total(
        self,
        hourly_rate: int,
        duration_hours: Hours,
        extras: Iterable[Extra] = (),
        deposit_policy: DepositPolicy = DepositPolicy(),
        services: Iterable[ServiceLine] = (),
        currency: Optional[str] = None,
    ) -> PriceBreakdown:
        return compute_total(
            hourly_rate,
            duration_hours,
            extras=extras,
            deposit_policy=deposit_policy,
            services=services,
            platform_fee=self.platform_fee,
            currency=currency or self.currency,
        )
