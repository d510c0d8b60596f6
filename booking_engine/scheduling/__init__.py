from booking_engine.scheduling.errors import (
    BookingError,
    BookingNotFoundError,
    InvalidInputError,
    InvalidRangeError,
    InvalidTransitionError,
    PaymentError,
    ProviderNotFoundError,
    SlotUnavailableError,
)
from booking_engine.scheduling.time_range import TimeRange

__all__ = [
    "TimeRange",
    "BookingError",
    "BookingNotFoundError",
    "InvalidInputError",
    "InvalidRangeError",
    "InvalidTransitionError",
    "PaymentError",
    "ProviderNotFoundError",
    "SlotUnavailableError",
]
