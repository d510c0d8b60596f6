"""
Booking notifications.

In production, this would push to the notification service and email
templates (booking-request, booking-confirmation, ...). Delivery is fire
and forget: a failing notifier never affects a booking.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from booking_engine.schemas.booking_schema import Booking

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(self, event: str, booking: Booking) -> None: ...


@dataclass
class SentNotification:
    event: str
    booking_id: str
    provider_id: str
    client_id: str


class LoggingNotifier:
    """Logs every notification and keeps them for inspection."""

    def __init__(self) -> None:
        self.sent: list[SentNotification] = []

    async def notify(self, event: str, booking: Booking) -> None:
        self.sent.append(
            SentNotification(event, booking.booking_id, booking.provider_id, booking.client_id)
        )
        logger.info("Notification '%s' for booking %s", event, booking.reference)

    def events(self) -> list[str]:
        return [n.event for n in self.sent]


async def deliver(notifier: Notifier, event: str, booking: Booking) -> None:
    """Send a notification, logging instead of raising on failure."""
    try:
        await notifier.notify(event, booking)
    except Exception:
        logger.exception("Notification '%s' failed for booking %s", event, booking.booking_id)
