"""Half-open time interval value object."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from booking_engine.scheduling.errors import InvalidRangeError
from booking_engine.utils import is_aware

_SECONDS_PER_HOUR = Decimal(3600)


@dataclass(frozen=True, order=True)
class TimeRange:
    """Immutable interval ``[start, end)`` over timezone-aware datetimes.

    Ordering is by start, then end, so sorted collections of ranges are
    in calendar order.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if not (is_aware(self.start) and is_aware(self.end)):
            raise InvalidRangeError(
                f"Range bounds must be timezone-aware, got {self.start!r} - {self.end!r}"
            )
        if self.start >= self.end:
            raise InvalidRangeError(
                f"Range start must be before end, got {self.start.isoformat()} - "
                f"{self.end.isoformat()}"
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_hours(self) -> Decimal:
        """Length in hours, exact to the second."""
        return Decimal(int(self.duration.total_seconds())) / _SECONDS_PER_HOUR

    def overlaps(self, other: "TimeRange") -> bool:
        """True if the ranges share any instant. Touching endpoints do not overlap."""
        return self.start < other.end and other.start < self.end

    def contains(self, point: datetime) -> bool:
        return self.start <= point < self.end

    def covers(self, other: "TimeRange") -> bool:
        """True if ``other`` lies entirely within this range."""
        return self.start <= other.start and other.end <= self.end

    def intersection(self, other: "TimeRange") -> Optional["TimeRange"]:
        if not self.overlaps(other):
            return None
        return TimeRange(max(self.start, other.start), min(self.end, other.end))

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


def merge_ranges(ranges: list[TimeRange]) -> list[TimeRange]:
    """Merge overlapping or touching ranges into a sorted, disjoint list."""
    merged: list[TimeRange] = []
    for current in sorted(ranges):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            if current.end > last.end:
                merged[-1] = TimeRange(last.start, current.end)
        else:
            merged.append(current)
    return merged


def subtract_ranges(base: list[TimeRange], holes: list[TimeRange]) -> list[TimeRange]:
    """Remove every ``hole`` from the sorted, disjoint ``base`` ranges."""
    result: list[TimeRange] = []
    ordered_holes = merge_ranges(holes)
    for piece in base:
        cursor = piece.start
        for hole in ordered_holes:
            if hole.end <= cursor or hole.start >= piece.end:
                continue
            if hole.start > cursor:
                result.append(TimeRange(cursor, hole.start))
            cursor = max(cursor, hole.end)
            if cursor >= piece.end:
                break
        if cursor < piece.end:
            result.append(TimeRange(cursor, piece.end))
    return result
