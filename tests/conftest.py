"""Shared test fixtures and helpers."""

from datetime import datetime, time, timedelta, timezone
from typing import Optional

import pytest

from booking_engine.scheduling.calendar import AvailabilityCalendar
from booking_engine.scheduling.lifecycle import BookingLifecycle
from booking_engine.scheduling.pricing import compute_total
from booking_engine.scheduling.scheduler import BookingScheduler
from booking_engine.scheduling.time_range import TimeRange
from booking_engine.schemas.availability_schema import ProviderSchedule, WeeklyWindow
from booking_engine.schemas.booking_schema import (
    Booking,
    BookingStatus,
    DepositRecord,
    Payment,
)
from booking_engine.schemas.provider_schema import (
    BookingRequirements,
    DepositPolicy,
    ProviderProfile,
    ServiceLine,
)
from booking_engine.tools.notifications import LoggingNotifier
from booking_engine.tools.payments import MockPaymentGateway
from booking_engine.tools.providers import InMemoryProviderDirectory
from booking_engine.tools.refunds import TieredRefundPolicy
from booking_engine.tools.repository import InMemoryBookingRepository

UTC = timezone.utc
PROVIDER_ID = "prov-1"
DEPOSIT_PROVIDER_ID = "prov-deposit"
CLIENT_ID = "client-1"


def at(day: int, hour: int, minute: int = 0, month: int = 1, year: int = 2024) -> datetime:
    """Aware UTC datetime. January 2024 starts on a Monday the 1st; the 15th is a Monday."""
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def make_range(day: int, start_hour: int, end_hour: int, month: int = 1) -> TimeRange:
    return TimeRange(at(day, start_hour, month=month), at(day, end_hour, month=month))


class FixedClock:
    """Controllable clock passed wherever the engine asks for 'now'."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_profile(provider_id: str = PROVIDER_ID, **overrides) -> ProviderProfile:
    data = {
        "provider_id": provider_id,
        "display_name": "Test Provider",
        "hourly_rate": 20000,
        "currency": "EUR",
        "services": [
            ServiceLine(service_id="dinner", name="Dinner date", duration_minutes=120),
            ServiceLine(service_id="travel", name="Travel companion", price=5000),
        ],
    }
    data.update(overrides)
    return ProviderProfile(**data)


def make_deposit_profile(provider_id: str = DEPOSIT_PROVIDER_ID) -> ProviderProfile:
    return make_profile(
        provider_id,
        requirements=BookingRequirements(deposit_required=True, identification_required=True),
        deposit_policy=DepositPolicy(required=True, amount=5000),
    )


def make_schedule(
    provider_id: str = PROVIDER_ID,
    start: time = time(8),
    end: time = time(23),
    timezone_name: str = "UTC",
    **kwargs,
) -> ProviderSchedule:
    """Open every day of the week between ``start`` and ``end``."""
    return ProviderSchedule(
        provider_id=provider_id,
        timezone=timezone_name,
        windows=[WeeklyWindow(weekday=d, start=start, end=end) for d in range(7)],
        **kwargs,
    )


def make_booking(
    booking_id: str = "bkg-1",
    time_range: Optional[TimeRange] = None,
    status: BookingStatus = BookingStatus.PENDING,
    deposit: Optional[int] = None,
    deposit_paid: bool = False,
    provider_id: str = PROVIDER_ID,
    client_id: str = CLIENT_ID,
) -> Booking:
    """Create a Booking directly, bypassing the scheduler."""
    time_range = time_range or make_range(15, 14, 16)
    price = compute_total(
        20000,
        time_range.duration_hours,
        deposit_policy=DepositPolicy(required=deposit is not None, amount=deposit or 0),
    )
    deposit_record = None
    if deposit is not None:
        deposit_record = DepositRecord(amount=deposit, paid=deposit_paid)
    return Booking(
        booking_id=booking_id,
        provider_id=provider_id,
        client_id=client_id,
        start=time_range.start,
        end=time_range.end,
        status=status,
        payment=Payment(price=price, deposit=deposit_record),
        requirements=BookingRequirements(deposit_required=deposit is not None),
    )


@pytest.fixture
def clock():
    return FixedClock(at(1, 9))


@pytest.fixture
def payments():
    return MockPaymentGateway()


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def repository():
    return InMemoryBookingRepository()


@pytest.fixture
def directory():
    directory = InMemoryProviderDirectory()
    for profile in (make_profile(), make_deposit_profile()):
        directory.add_profile(profile)
        directory.add_schedule(make_schedule(profile.provider_id))
    return directory


@pytest.fixture
def calendar():
    calendar = AvailabilityCalendar()
    calendar.replace_schedule(make_schedule())
    calendar.load(PROVIDER_ID, [])
    return calendar


@pytest.fixture
def lifecycle(payments, clock):
    return BookingLifecycle(payments=payments, refund_policy=TieredRefundPolicy(), clock=clock)


@pytest.fixture
def scheduler(repository, directory, payments, notifier, clock):
    return BookingScheduler(
        repository=repository,
        directory=directory,
        payments=payments,
        notifier=notifier,
        clock=clock,
    )
