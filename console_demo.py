"""
Offline console demo: runs the booking engine end to end in the terminal.

Uses the real calendar, price calculator, lifecycle and scheduler with the
in-memory repository, provider directory and mock payment gateway. No
database, no payment processor, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario conflict
    python console_demo.py --scenario concurrent
"""

import argparse
import asyncio
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from booking_engine.config import settings
from booking_engine.logging_context import request_scope
from booking_engine.scheduling.errors import BookingError, SlotUnavailableError
from booking_engine.scheduling.lifecycle import BookingEvent
from booking_engine.scheduling.scheduler import BookingScheduler
from booking_engine.scheduling.time_range import TimeRange
from booking_engine.schemas.availability_schema import ProviderSchedule, WeeklyWindow
from booking_engine.schemas.booking_schema import Booking, Extra
from booking_engine.schemas.provider_schema import (
    BookingRequirements,
    DepositPolicy,
    ProviderProfile,
    ServiceLine,
)
from booking_engine.tools.notifications import LoggingNotifier
from booking_engine.tools.payments import MockPaymentGateway
from booking_engine.tools.providers import InMemoryProviderDirectory
from booking_engine.tools.repository import InMemoryBookingRepository
from booking_engine.utils import format_money

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

PROVIDER_ID = "prov-lena"
ZONE = ZoneInfo(settings.scheduling.default_timezone)


class DemoSession:
    """Wires the scheduler to in-memory collaborators with one demo provider."""

    SCENARIOS = ("booking", "conflict", "cancel", "concurrent")

    def __init__(self) -> None:
        self.directory = InMemoryProviderDirectory()
        self.payments = MockPaymentGateway()
        self.notifier = LoggingNotifier()
        self.repository = InMemoryBookingRepository(latency=0.01)
        self.directory.add_profile(ProviderProfile(
            provider_id=PROVIDER_ID,
            display_name="Lena",
            hourly_rate=25000,
            currency=settings.pricing.currency,
            requirements=BookingRequirements(identification_required=True),
            deposit_policy=DepositPolicy(required=True, amount=5000),
            services=[
                ServiceLine(service_id="dinner", name="Dinner date", duration_minutes=120),
                ServiceLine(service_id="travel", name="Travel companion", price=10000),
            ],
        ))
        self.scheduler = BookingScheduler(
            repository=self.repository,
            directory=self.directory,
            payments=self.payments,
            notifier=self.notifier,
        )
        self.day = (datetime.now(ZONE) + timedelta(days=7)).date()

    def at(self, hour: int) -> datetime:
        return datetime.combine(self.day, time(hour), tzinfo=ZONE)

    def say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[scheduler]{RESET} {GREEN}{text}{RESET}")

    def warn(self, text: str) -> None:
        print(f"{RED}{BOLD}[rejected]{RESET} {RED}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def show(self, booking: Booking) -> None:
        price = booking.payment.price
        self.say(
            f"{booking.reference} {booking.status.value}: {booking.time_range} "
            f"total {format_money(price.total, price.currency)}"
        )
        if booking.payment.deposit is not None:
            deposit = booking.payment.deposit
            state = "paid" if deposit.paid else "due"
            self.system_log(f"deposit {format_money(deposit.amount, price.currency)} {state}")

    async def setup(self) -> None:
        await self.scheduler.update_schedule(ProviderSchedule(
            provider_id=PROVIDER_ID,
            timezone=settings.scheduling.default_timezone,
            windows=[WeeklyWindow(weekday=d, start=time(12), end=time(23)) for d in range(7)],
        ))
        self.system_log(f"Provider {PROVIDER_ID} open 12:00-23:00 daily ({ZONE.key})")

    async def request(self, start: int, end: int, **kwargs) -> Booking:
        requested = TimeRange(self.at(start), self.at(end))
        with request_scope() as request_id:
            print(
                f"{BLUE}{BOLD}[client]{RESET} {BLUE}Request {start:02d}:00-{end:02d}:00{RESET} "
                f"{DIM}({request_id}){RESET}"
            )
            return await self.scheduler.request_booking(
                PROVIDER_ID, "client-max", requested, **kwargs
            )

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    async def scenario_booking(self) -> None:
        booking = await self.request(
            19, 22, services=["dinner"], extras=[Extra(name="Champagne", price=8000)]
        )
        self.show(booking)
        booking = await self.scheduler.transition(
            booking.booking_id, BookingEvent.CONFIRM, {"actor": "provider"}
        )
        self.show(booking)

    async def scenario_conflict(self) -> None:
        first = await self.request(14, 16)
        first = await self.scheduler.transition(
            first.booking_id, BookingEvent.CONFIRM, {"actor": "provider"}
        )
        self.show(first)
        try:
            await self.request(15, 17)
        except SlotUnavailableError as exc:
            self.warn(str(exc))
        self.show(await self.request(16, 18))

    async def scenario_cancel(self) -> None:
        booking = await self.request(12, 14)
        booking = await self.scheduler.transition(
            booking.booking_id, BookingEvent.CONFIRM, {"actor": "provider"}
        )
        booking = await self.scheduler.transition(
            booking.booking_id, BookingEvent.CANCEL,
            {"actor": "client", "reason": "Plans changed"},
        )
        self.show(booking)
        refund = booking.payment.refund_amount
        self.system_log(f"refunded {format_money(refund, booking.payment.currency)}")
        try:
            await self.scheduler.transition(
                booking.booking_id, BookingEvent.CONFIRM, {"actor": "provider"}
            )
        except BookingError as exc:
            self.warn(str(exc))

    async def scenario_concurrent(self) -> None:
        results = await asyncio.gather(
            self.request(22, 23), self.request(22, 23), return_exceptions=True
        )
        for result in results:
            if isinstance(result, Booking):
                self.show(result)
            else:
                self.warn(str(result))

    async def run_scenario(self, name: str) -> None:
        await self.setup()
        print(f"\n{YELLOW}{BOLD}=== {name} ==={RESET}")
        await getattr(self, f"scenario_{name}")()

    async def run_all(self) -> None:
        await self.setup()
        for name in self.SCENARIOS:
            print(f"\n{YELLOW}{BOLD}=== {name} ==={RESET}")
            try:
                await getattr(self, f"scenario_{name}")()
            except BookingError as exc:
                self.warn(str(exc))
        free = await self.scheduler.list_availability(PROVIDER_ID, self.at(12), self.at(23))
        self.system_log("Still free: " + ", ".join(
            f"{r.start:%H:%M}-{r.end:%H:%M}" for r in free
        ))
        self.system_log(f"Notifications sent: {len(self.notifier.sent)}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking engine demo")
    parser.add_argument(
        "--scenario",
        choices=DemoSession.SCENARIOS,
        default=None,
        help="Run one scenario instead of all of them",
    )
    args = parser.parse_args()

    session = DemoSession()
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run_all())


if __name__ == "__main__":
    main()
