"""Booking, payment and price data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from booking_engine.scheduling.time_range import TimeRange
from booking_engine.schemas.provider_schema import BookingRequirements, ServiceLine
from booking_engine.utils import generate_reference, utcnow


class BookingStatus(str, Enum):
    """All possible states in a booking lifecycle."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


# Bookings in these states hold their range on the provider's calendar
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED}
)


class Actor(str, Enum):
    """Who triggered a lifecycle event."""
    CLIENT = "client"
    PROVIDER = "provider"
    SYSTEM = "system"


class Extra(BaseModel):
    """Add-on charged on top of the hourly rate."""
    name: str
    price: int


class PriceBreakdown(BaseModel):
    """Itemized price, all amounts in minor units."""
    currency: str
    subtotal: int
    services_total: int = 0
    extras_total: int = 0
    platform_fee: int = 0
    total: int
    deposit: Optional[int] = None


class DepositRecord(BaseModel):
    """What was actually paid up front."""
    amount: int
    paid: bool = False
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None


class Payment(BaseModel):
    price: PriceBreakdown
    deposit: Optional[DepositRecord] = None
    refund_amount: int = 0
    refund_transaction_id: Optional[str] = None

    @property
    def currency(self) -> str:
        return self.price.currency

    @property
    def amount_paid(self) -> int:
        if self.deposit is not None and self.deposit.paid:
            return self.deposit.amount
        return 0


class Cancellation(BaseModel):
    cancelled_by: Actor
    reason: str
    cancelled_at: datetime
    refund_amount: int = 0


class StatusChange(BaseModel):
    """Audit entry for one lifecycle transition."""
    status: BookingStatus
    at: datetime
    event: Optional[str] = None
    actor: Optional[Actor] = None
    note: Optional[str] = None


class Booking(BaseModel):
    """A booking and its full audit trail. Never deleted."""
    booking_id: str
    reference: str = Field(default_factory=generate_reference)
    provider_id: str
    client_id: str
    start: datetime
    end: datetime
    services: list[ServiceLine] = Field(default_factory=list)
    extras: list[Extra] = Field(default_factory=list)
    status: BookingStatus = BookingStatus.PENDING
    payment: Payment
    requirements: BookingRequirements = Field(default_factory=BookingRequirements)
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    cancellation: Optional[Cancellation] = None
    completed_at: Optional[datetime] = None
    history: list[StatusChange] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(self.start, self.end)

    @property
    def is_active(self) -> bool:
        """True while the booking holds its range on the calendar."""
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class BookingRequest(BaseModel):
    """Booking request as received from the API layer."""
    provider_id: str
    client_id: str
    start: datetime
    end: datetime
    service_ids: list[str] = Field(default_factory=list)
    extras: list[Extra] = Field(default_factory=list)
    notes: Optional[str] = None

    def to_range(self) -> TimeRange:
        return TimeRange(self.start, self.end)


class ProviderStats(BaseModel):
    """Booking counts and revenue for a provider's dashboard."""
    provider_id: str
    total: int = 0
    by_status: dict[BookingStatus, int] = Field(default_factory=dict)
    completed_revenue: int = 0
    currency: str = "EUR"

    @property
    def completion_rate(self) -> float:
        """Share of decided bookings (not pending or confirmed) that completed."""
        decided = sum(n for s, n in self.by_status.items() if s in TERMINAL_STATUSES)
        if not decided:
            return 0.0
        return self.by_status.get(BookingStatus.COMPLETED, 0) / decided
