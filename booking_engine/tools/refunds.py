"""Cancellation refund policies."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from booking_engine.config import RefundConfig
from booking_engine.schemas.booking_schema import Actor, Booking
from booking_engine.utils import round_minor

logger = logging.getLogger(__name__)


class RefundPolicy(Protocol):
    def refund_amount(self, booking: Booking, cancelled_by: Actor, now: datetime) -> int:
        """Minor units to refund when ``booking`` is cancelled at ``now``."""
        ...


class TieredRefundPolicy:
    """
    Refund a share of what was paid depending on notice given.

    More than ``full_notice_hours`` before the start refunds ``full_rate``,
    more than ``partial_notice_hours`` refunds ``partial_rate``, anything
    later refunds nothing. A provider cancelling always refunds everything.
    """

    def __init__(
        self,
        full_notice_hours: int = 48,
        full_rate: float = 0.90,
        partial_notice_hours: int = 24,
        partial_rate: float = 0.50,
    ) -> None:
        self.full_notice_hours = full_notice_hours
        self.full_rate = Decimal(str(full_rate))
        self.partial_notice_hours = partial_notice_hours
        self.partial_rate = Decimal(str(partial_rate))

    @classmethod
    def from_config(cls, config: RefundConfig) -> "TieredRefundPolicy":
        return cls(
            full_notice_hours=config.full_notice_hours,
            full_rate=config.full_rate,
            partial_notice_hours=config.partial_notice_hours,
            partial_rate=config.partial_rate,
        )

    def refund_amount(self, booking: Booking, cancelled_by: Actor, now: datetime) -> int:
        paid = booking.payment.amount_paid
        if paid <= 0:
            return 0
        if cancelled_by == Actor.PROVIDER:
            return paid

        hours_until_start = Decimal(int((booking.start - now).total_seconds())) / 3600
        if hours_until_start > self.full_notice_hours:
            rate = self.full_rate
        elif hours_until_start > self.partial_notice_hours:
            rate = self.partial_rate
        else:
            rate = Decimal(0)
        amount = min(paid, round_minor(paid * rate))
        logger.debug(
            "Refund for %s: %d of %d paid (%.1f h notice)",
            booking.reference, amount, paid, hours_until_start,
        )
        return amount
