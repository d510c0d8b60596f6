"""Recurring availability windows and one-off exceptions."""

from datetime import datetime, time
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_engine.scheduling.time_range import TimeRange


class ExceptionKind(str, Enum):
    """Whether an exception closes or opens time."""
    BLACKOUT = "blackout"
    EXTRA = "extra"


class WeeklyWindow(BaseModel):
    """Recurring opening on one weekday, in the provider's local time.

    ``weekday`` follows ``datetime.weekday()``: 0 is Monday. A window whose
    end is at or before its start runs past midnight into the next day.
    """
    weekday: int = Field(ge=0, le=6)
    start: time
    end: time

    @property
    def overnight(self) -> bool:
        return self.end <= self.start


class AvailabilityException(BaseModel):
    """Explicit one-off blackout or extra opening."""
    kind: ExceptionKind
    start: datetime
    end: datetime
    note: str = ""

    @model_validator(mode="after")
    def _check_range(self) -> "AvailabilityException":
        # Raises InvalidRangeError on naive or inverted bounds
        self.time_range
        return self

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.start, self.end)


class ProviderSchedule(BaseModel):
    """A provider's complete availability. Replaced wholesale on update."""
    provider_id: str
    timezone: str = "UTC"
    windows: list[WeeklyWindow] = Field(default_factory=list)
    exceptions: list[AvailabilityException] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value!r}") from None
        return value

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def blackouts(self) -> list[TimeRange]:
        return [e.time_range for e in self.exceptions if e.kind == ExceptionKind.BLACKOUT]

    def extras(self) -> list[TimeRange]:
        return [e.time_range for e in self.exceptions if e.kind == ExceptionKind.EXTRA]
