"""
Per-provider availability calendar.

Holds two things for each provider: the recurring schedule (weekly
windows plus blackout/extra exceptions) and the ranges reserved by
active bookings. Reservations are kept as a sorted array. Because active
reservations never overlap, sorting by start also sorts by end, so any
window query is a binary search plus a walk over the k hits.

Every mutation publishes a new immutable snapshot. Readers grab the
current snapshot once and never see a half-applied reservation.

Usage:
    calendar = AvailabilityCalendar()
    calendar.replace_schedule(schedule)
    if calendar.is_free("prov-1", requested):
        calendar.reserve("prov-1", "bkg-1", requested)
"""

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, Optional

from booking_engine.scheduling.errors import SlotUnavailableError
from booking_engine.scheduling.time_range import TimeRange, merge_ranges, subtract_ranges
from booking_engine.schemas.availability_schema import ProviderSchedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    """A range held on the calendar by one active booking."""
    booking_id: str
    time_range: TimeRange


@dataclass(frozen=True)
class _Snapshot:
    """Immutable sorted view of a provider's reservations."""
    reservations: tuple[Reservation, ...] = ()
    starts: tuple[datetime, ...] = ()
    ends: tuple[datetime, ...] = ()

    @classmethod
    def build(cls, reservations: Iterable[Reservation]) -> "_Snapshot":
        ordered = tuple(sorted(reservations, key=lambda r: r.time_range))
        return cls(
            reservations=ordered,
            starts=tuple(r.time_range.start for r in ordered),
            ends=tuple(r.time_range.end for r in ordered),
        )

    def window(self, start: datetime, end: datetime) -> Iterator[Reservation]:
        """Yield reservations intersecting ``[start, end)`` in start order."""
        # First reservation whose end lies after ``start``
        index = bisect_right(self.ends, start)
        while index < len(self.reservations) and self.starts[index] < end:
            yield self.reservations[index]
            index += 1


_EMPTY = _Snapshot()


class BookedRanges:
    """Lazy, finite, restartable view of reserved ranges in a window.

    Bound to the snapshot current at creation, so iterating twice yields
    the same ranges even if the calendar changes in between.
    """

    def __init__(self, snapshot: _Snapshot, start: datetime, end: datetime) -> None:
        self._snapshot = snapshot
        self._start = start
        self._end = end

    def __iter__(self) -> Iterator[TimeRange]:
        for reservation in self._snapshot.window(self._start, self._end):
            yield reservation.time_range

    def reservations(self) -> Iterator[Reservation]:
        return self._snapshot.window(self._start, self._end)


class AvailabilityCalendar:
    """
    Answers "is this range free" for every provider it knows.

    Not synchronized by itself: the scheduler serializes mutations for a
    provider behind that provider's lock.
    """

    def __init__(self) -> None:
        self._schedules: dict[str, ProviderSchedule] = {}
        self._snapshots: dict[str, _Snapshot] = {}

    # --- Schedule -----------------------------------------------------

    def replace_schedule(self, schedule: ProviderSchedule) -> None:
        """Replace a provider's windows and exceptions wholesale."""
        self._schedules[schedule.provider_id] = schedule.model_copy(deep=True)
        logger.info(
            "Schedule replaced for %s: %d windows, %d exceptions",
            schedule.provider_id, len(schedule.windows), len(schedule.exceptions),
        )

    def get_schedule(self, provider_id: str) -> Optional[ProviderSchedule]:
        return self._schedules.get(provider_id)

    def open_ranges(self, provider_id: str, start: datetime, end: datetime) -> list[TimeRange]:
        """Merged open time in ``[start, end)``: windows plus extras minus blackouts."""
        query = TimeRange(start, end)
        schedule = self._schedules.get(provider_id)
        if schedule is None:
            return []

        zone = schedule.zone
        # One day of slack on each side catches overnight windows
        first_day = query.start.astimezone(zone).date() - timedelta(days=1)
        last_day = query.end.astimezone(zone).date()

        candidates: list[TimeRange] = []
        day = first_day
        while day <= last_day:
            for window in schedule.windows:
                if window.weekday != day.weekday():
                    continue
                # Held in UTC; a wall time inside a DST gap takes the pre-transition offset
                window_start = datetime.combine(day, window.start, tzinfo=zone).astimezone(timezone.utc)
                end_day = day + timedelta(days=1) if window.overnight else day
                window_end = datetime.combine(end_day, window.end, tzinfo=zone).astimezone(timezone.utc)
                if window_start < window_end:
                    candidates.append(TimeRange(window_start, window_end))
            day += timedelta(days=1)
        candidates.extend(schedule.extras())

        opened = subtract_ranges(merge_ranges(candidates), schedule.blackouts())
        clipped = [piece.intersection(query) for piece in opened]
        return [piece for piece in clipped if piece is not None]

    # --- Reservations -------------------------------------------------

    def load(self, provider_id: str, reservations: Iterable[Reservation]) -> None:
        """Replace a provider's reservations, e.g. when hydrating from storage."""
        self._snapshots[provider_id] = _Snapshot.build(reservations)

    def is_loaded(self, provider_id: str) -> bool:
        return provider_id in self._snapshots

    def booked_ranges(self, provider_id: str, start: datetime, end: datetime) -> BookedRanges:
        """Reserved ranges intersecting ``[start, end)``, ascending by start."""
        TimeRange(start, end)
        return BookedRanges(self._snapshots.get(provider_id, _EMPTY), start, end)

    def free_ranges(self, provider_id: str, start: datetime, end: datetime) -> list[TimeRange]:
        """Open time in ``[start, end)`` that no active booking holds."""
        snapshot = self._snapshots.get(provider_id, _EMPTY)
        booked = list(BookedRanges(snapshot, start, end))
        return subtract_ranges(self.open_ranges(provider_id, start, end), booked)

    def conflicts(self, provider_id: str, requested: TimeRange) -> list[Reservation]:
        snapshot = self._snapshots.get(provider_id, _EMPTY)
        return list(snapshot.window(requested.start, requested.end))

    def within_schedule(self, provider_id: str, requested: TimeRange) -> bool:
        return any(
            piece.covers(requested)
            for piece in self.open_ranges(provider_id, requested.start, requested.end)
        )

    def is_free(self, provider_id: str, requested: TimeRange) -> bool:
        """True if no active booking overlaps and one open window covers the range."""
        if self.conflicts(provider_id, requested):
            return False
        return self.within_schedule(provider_id, requested)

    def reserve(self, provider_id: str, booking_id: str, requested: TimeRange) -> Reservation:
        """Hold ``requested`` for a booking.

        Raises:
            SlotUnavailableError: If an active reservation overlaps.
        """
        snapshot = self._snapshots.get(provider_id, _EMPTY)
        clashes = list(snapshot.window(requested.start, requested.end))
        if clashes:
            raise SlotUnavailableError(
                provider_id,
                f"Range {requested} overlaps booking {clashes[0].booking_id}.",
            )
        reservation = Reservation(booking_id=booking_id, time_range=requested)
        index = bisect_left(snapshot.starts, requested.start)
        reservations = list(snapshot.reservations)
        reservations.insert(index, reservation)
        self._snapshots[provider_id] = _Snapshot(
            reservations=tuple(reservations),
            starts=tuple(r.time_range.start for r in reservations),
            ends=tuple(r.time_range.end for r in reservations),
        )
        logger.debug("Reserved %s for booking %s (provider %s)", requested, booking_id, provider_id)
        return reservation

    def release(self, provider_id: str, booking_id: str) -> bool:
        """Free the range held by a booking. Returns False if none was held."""
        snapshot = self._snapshots.get(provider_id, _EMPTY)
        remaining = [r for r in snapshot.reservations if r.booking_id != booking_id]
        if len(remaining) == len(snapshot.reservations):
            logger.debug("No reservation to release for booking %s", booking_id)
            return False
        self._snapshots[provider_id] = _Snapshot(
            reservations=tuple(remaining),
            starts=tuple(r.time_range.start for r in remaining),
            ends=tuple(r.time_range.end for r in remaining),
        )
        logger.debug("Released booking %s (provider %s)", booking_id, provider_id)
        return True

    def reservation_count(self, provider_id: str) -> int:
        return len(self._snapshots.get(provider_id, _EMPTY).reservations)
