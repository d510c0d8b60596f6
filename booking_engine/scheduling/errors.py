"""Error taxonomy for the booking engine.

Every error here is a local condition the caller can recover from. The
scheduler and lifecycle raise them unchanged; translating them into
user-facing messages is the API layer's job.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for all booking engine errors."""


class InvalidInputError(BookingError):
    """Raised for bad price, duration, service or request inputs."""


class InvalidRangeError(InvalidInputError):
    """Raised when a time range is empty, inverted or not timezone-aware."""


class SlotUnavailableError(BookingError):
    """Raised when a requested range conflicts with the provider's calendar."""

    def __init__(self, provider_id: str, message: str) -> None:
        super().__init__(message)
        self.provider_id = provider_id


class InvalidTransitionError(BookingError):
    """Raised when a lifecycle event is not allowed or its guard fails."""

    def __init__(self, current_state: str, event: str, reason: str) -> None:
        super().__init__(
            f"Cannot apply '{event}' to booking in state '{current_state}': {reason}"
        )
        self.current_state = current_state
        self.event = event
        self.reason = reason


class BookingNotFoundError(BookingError):
    """Raised when a booking id is unknown to the repository."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking {booking_id} not found.")
        self.booking_id = booking_id


class ProviderNotFoundError(BookingError):
    """Raised when a provider id is unknown to the directory."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider {provider_id} not found.")
        self.provider_id = provider_id


class PaymentError(BookingError):
    """Raised by the payment gateway when a capture or refund fails."""

    def __init__(self, message: str, transaction_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.transaction_id = transaction_id
