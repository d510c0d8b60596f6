"""
Mock booking persistence.

In production, this would be backed by the marketplace database, which
provides per-provider serializable writes. Records are stored as deep
copies so callers can never mutate persisted state by accident.
"""

import asyncio
import logging
from typing import Iterable, Optional, Protocol

from booking_engine.scheduling.errors import BookingNotFoundError
from booking_engine.schemas.booking_schema import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingRepository(Protocol):
    async def add(self, booking: Booking) -> None: ...

    async def save(self, booking: Booking) -> None: ...

    async def get(self, booking_id: str) -> Booking: ...

    async def list_for_provider(
        self, provider_id: str, statuses: Optional[Iterable[BookingStatus]] = None
    ) -> list[Booking]: ...

    async def list_for_client(self, client_id: str) -> list[Booking]: ...


class InMemoryBookingRepository:
    """Dict-backed repository. ``latency`` simulates a database round-trip."""

    def __init__(self, latency: float = 0.0) -> None:
        self._bookings: dict[str, Booking] = {}
        self.latency = latency

    async def _round_trip(self) -> None:
        # Always yield so callers experience a real suspension point
        await asyncio.sleep(self.latency)

    async def add(self, booking: Booking) -> None:
        await self._round_trip()
        if booking.booking_id in self._bookings:
            raise ValueError(f"Booking {booking.booking_id} already exists")
        self._bookings[booking.booking_id] = booking.model_copy(deep=True)
        logger.debug("Stored booking %s", booking.booking_id)

    async def save(self, booking: Booking) -> None:
        await self._round_trip()
        if booking.booking_id not in self._bookings:
            raise BookingNotFoundError(booking.booking_id)
        self._bookings[booking.booking_id] = booking.model_copy(deep=True)

    async def get(self, booking_id: str) -> Booking:
        await self._round_trip()
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking.model_copy(deep=True)

    async def list_for_provider(
        self, provider_id: str, statuses: Optional[Iterable[BookingStatus]] = None
    ) -> list[Booking]:
        await self._round_trip()
        wanted = set(statuses) if statuses is not None else None
        return [
            b.model_copy(deep=True)
            for b in self._bookings.values()
            if b.provider_id == provider_id and (wanted is None or b.status in wanted)
        ]

    async def list_for_client(self, client_id: str) -> list[Booking]:
        await self._round_trip()
        return [b.model_copy(deep=True) for b in self._bookings.values() if b.client_id == client_id]

    def __len__(self) -> int:
        return len(self._bookings)

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        self._bookings.clear()
