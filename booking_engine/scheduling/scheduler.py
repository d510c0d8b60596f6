"""
Booking scheduler: the engine's entry point for the API layer.

Combines the availability calendar, the price calculator and the booking
lifecycle. All work that mutates a provider's calendar happens inside that
provider's lock, and the lock spans every await in between (profile
lookup, persistence, payment calls). Two requests for overlapping ranges
can therefore never both see the slot as free.

Usage:
    scheduler = BookingScheduler(repository, directory, payments)
    booking = await scheduler.request_booking("prov-1", "client-9", requested)
    booking = await scheduler.transition(
        booking.booking_id, BookingEvent.CONFIRM, {"actor": "provider"}
    )
"""

import uuid
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional, Union

from booking_engine.config import AppConfig, settings
from booking_engine.logging_context import get_request_logger
from booking_engine.scheduling.calendar import AvailabilityCalendar, BookedRanges, Reservation
from booking_engine.scheduling.errors import InvalidInputError, SlotUnavailableError
from booking_engine.scheduling.lifecycle import BookingEvent, BookingLifecycle, TransitionPayload
from booking_engine.scheduling.locks import ProviderLocks
from booking_engine.scheduling.pricing import PriceCalculator
from booking_engine.scheduling.time_range import TimeRange
from booking_engine.schemas.availability_schema import ProviderSchedule
from booking_engine.schemas.booking_schema import (
    ACTIVE_STATUSES,
    Actor,
    Booking,
    BookingRequest,
    BookingStatus,
    DepositRecord,
    Extra,
    Payment,
    ProviderStats,
    StatusChange,
)
from booking_engine.schemas.provider_schema import DepositPolicy, ProviderProfile, ServiceLine
from booking_engine.tools.notifications import LoggingNotifier, Notifier, deliver
from booking_engine.tools.payments import PaymentGateway
from booking_engine.tools.providers import ProviderDirectory
from booking_engine.tools.refunds import RefundPolicy, TieredRefundPolicy
from booking_engine.tools.repository import BookingRepository
from booking_engine.utils import utcnow

logger = get_request_logger(__name__)


class BookingScheduler:
    """Accepts, prices and transitions bookings without double-booking."""

    def __init__(
        self,
        repository: BookingRepository,
        directory: ProviderDirectory,
        payments: PaymentGateway,
        notifier: Optional[Notifier] = None,
        refund_policy: Optional[RefundPolicy] = None,
        calendar: Optional[AvailabilityCalendar] = None,
        config: AppConfig = settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repository = repository
        self.directory = directory
        self.notifier = notifier or LoggingNotifier()
        self.calendar = calendar or AvailabilityCalendar()
        self.config = config
        self.clock = clock
        self.locks = ProviderLocks()
        self.pricing = PriceCalculator(
            currency=config.pricing.currency,
            platform_fee=config.pricing.platform_fee,
        )
        self.lifecycle = BookingLifecycle(
            payments=payments,
            refund_policy=refund_policy or TieredRefundPolicy.from_config(config.refunds),
            clock=clock,
        )

    # --- Calendar hydration -------------------------------------------

    async def _load_provider(self, provider_id: str) -> None:
        """Populate the calendar from storage. Caller holds the provider lock."""
        if self.calendar.is_loaded(provider_id):
            return
        schedule = await self.directory.get_schedule(provider_id)
        if schedule is not None:
            self.calendar.replace_schedule(schedule)
        active = await self.repository.list_for_provider(provider_id, statuses=ACTIVE_STATUSES)
        self.calendar.load(
            provider_id,
            (Reservation(b.booking_id, b.time_range) for b in active),
        )
        logger.debug("Calendar loaded for %s with %d active bookings", provider_id, len(active))

    async def _ensure_loaded(self, provider_id: str) -> None:
        if self.calendar.is_loaded(provider_id):
            return
        async with self.locks.lock_for(provider_id):
            await self._load_provider(provider_id)

    # --- Validation ---------------------------------------------------

    def _validate_range(self, requested: TimeRange) -> None:
        limits = self.config.scheduling
        minutes = requested.duration.total_seconds() / 60
        if minutes < limits.min_booking_minutes:
            raise InvalidInputError(
                f"Bookings must last at least {limits.min_booking_minutes} minutes"
            )
        if minutes > limits.max_booking_hours * 60:
            raise InvalidInputError(
                f"Bookings may last at most {limits.max_booking_hours} hours"
            )
        earliest = self.clock() + timedelta(minutes=limits.min_lead_time_minutes)
        if requested.start < earliest:
            raise InvalidInputError(
                f"Bookings must start at or after {earliest.isoformat()}"
            )

    @staticmethod
    def _resolve_services(profile: ProviderProfile, service_ids: Iterable[str]) -> list[ServiceLine]:
        lines: list[ServiceLine] = []
        seen: set[str] = set()
        for service_id in service_ids:
            if service_id in seen:
                continue
            service = profile.find_service(service_id)
            if service is None:
                raise InvalidInputError(
                    f"Provider {profile.provider_id} does not offer service '{service_id}'"
                )
            seen.add(service_id)
            lines.append(service.model_copy(deep=True))
        return lines

    # --- Booking requests ---------------------------------------------

    async def request_booking(
        self,
        provider_id: str,
        client_id: str,
        requested: TimeRange,
        services: Iterable[str] = (),
        extras: Iterable[Extra] = (),
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Place a new booking in ``pending`` if the range is free.

        Returns:
            The persisted Booking.

        Raises:
            InvalidInputError: Bad range, length, lead time, service or price.
            ProviderNotFoundError: Unknown provider.
            SlotUnavailableError: Range overlaps an active booking or falls
                outside the provider's availability.
        """
        if not client_id or not client_id.strip():
            raise InvalidInputError("A client id is required")
        if client_id == provider_id:
            raise InvalidInputError("Providers cannot book themselves")
        self._validate_range(requested)
        extras = [e.model_copy() for e in extras]

        async with self.locks.lock_for(provider_id):
            profile = await self.directory.get_profile(provider_id)
            service_lines = self._resolve_services(profile, services)
            await self._load_provider(provider_id)

            conflicts = self.calendar.conflicts(provider_id, requested)
            if conflicts:
                logger.info(
                    "Slot conflict for %s: %s overlaps %d booking(s)",
                    provider_id, requested, len(conflicts),
                )
                raise SlotUnavailableError(
                    provider_id, f"Provider is already booked during {requested}."
                )
            if not self.calendar.within_schedule(provider_id, requested):
                logger.info("Outside availability for %s: %s", provider_id, requested)
                raise SlotUnavailableError(
                    provider_id, f"Provider is not available during {requested}."
                )

            requirements = profile.requirements.model_copy()
            requirements.deposit_required = (
                requirements.deposit_required or profile.deposit_policy.required
            )
            price = self.pricing.compute_total(
                profile.hourly_rate,
                requested.duration_hours,
                extras=extras,
                deposit_policy=DepositPolicy(
                    required=requirements.deposit_required,
                    amount=profile.deposit_policy.amount,
                ),
                services=service_lines,
                currency=profile.currency,
            )
            now = self.clock()
            booking = Booking(
                booking_id=uuid.uuid4().hex,
                provider_id=provider_id,
                client_id=client_id,
                start=requested.start,
                end=requested.end,
                services=service_lines,
                extras=extras,
                payment=Payment(
                    price=price,
                    deposit=DepositRecord(amount=price.deposit) if price.deposit is not None else None,
                ),
                requirements=requirements,
                notes=notes,
                history=[StatusChange(
                    status=BookingStatus.PENDING, at=now, event="request", actor=Actor.CLIENT,
                )],
                created_at=now,
                updated_at=now,
            )
            await self.repository.add(booking)
            self.calendar.reserve(provider_id, booking.booking_id, requested)

        logger.info(
            "Booking %s requested: provider=%s client=%s %s total=%d %s",
            booking.reference, provider_id, client_id, requested,
            price.total, price.currency,
        )
        await deliver(self.notifier, "booking.requested", booking)
        return booking

    async def submit(self, request: BookingRequest) -> Booking:
        """``request_booking`` for a request body received from the API layer."""
        return await self.request_booking(
            request.provider_id,
            request.client_id,
            request.to_range(),
            services=request.service_ids,
            extras=request.extras,
            notes=request.notes,
        )

    # --- Lifecycle ----------------------------------------------------

    async def transition(
        self,
        booking_id: str,
        event: Union[BookingEvent, str],
        payload: Union[TransitionPayload, dict[str, Any], None] = None,
    ) -> Booking:
        """
        Apply a lifecycle event and persist the result.

        The range is released from the calendar once the booking leaves
        ``pending``/``confirmed``. If the lifecycle, payment or persistence
        step fails, the stored booking keeps its previous state.

        Payment calls carry a per-booking idempotency key, so retrying after
        a failed save replays the earlier capture or refund instead of
        charging or paying out again.

        Raises:
            BookingNotFoundError: Unknown booking id.
            InvalidTransitionError: Event not allowed or guard failed.
            PaymentError: Deposit capture or refund failed.
        """
        located = await self.repository.get(booking_id)
        provider_id = located.provider_id

        async with self.locks.lock_for(provider_id):
            await self._load_provider(provider_id)
            current = await self.repository.get(booking_id)
            updated = await self.lifecycle.apply(current, event, payload)
            try:
                await self.repository.save(updated)
            except Exception:
                logger.error(
                    "Persisting %s -> %s failed for booking %s; state unchanged",
                    current.status.value, updated.status.value, booking_id,
                )
                raise
            if current.is_active and not updated.is_active:
                self.calendar.release(provider_id, booking_id)

        logger.info(
            "Booking %s is now %s", updated.reference, updated.status.value,
        )
        await deliver(self.notifier, f"booking.{updated.status.value}", updated)
        return updated

    # --- Queries ------------------------------------------------------

    async def get_booking(self, booking_id: str) -> Booking:
        return await self.repository.get(booking_id)

    async def is_available(self, provider_id: str, requested: TimeRange) -> bool:
        await self._ensure_loaded(provider_id)
        return self.calendar.is_free(provider_id, requested)

    async def booked_ranges(self, provider_id: str, start: datetime, end: datetime) -> BookedRanges:
        await self._ensure_loaded(provider_id)
        return self.calendar.booked_ranges(provider_id, start, end)

    async def list_availability(
        self, provider_id: str, start: datetime, end: datetime
    ) -> list[TimeRange]:
        """Free ranges in ``[start, end)``: availability windows minus bookings."""
        await self._ensure_loaded(provider_id)
        return self.calendar.free_ranges(provider_id, start, end)

    async def find_open_slots(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        duration: timedelta,
        step: Optional[timedelta] = None,
    ) -> list[TimeRange]:
        """Bookable ranges of exactly ``duration``, one per ``step`` inside free time."""
        if duration <= timedelta(0):
            raise InvalidInputError(f"Slot duration must be positive, got {duration}")
        step = step or timedelta(minutes=self.config.scheduling.slot_step_minutes)
        if step <= timedelta(0):
            raise InvalidInputError(f"Slot step must be positive, got {step}")

        slots: list[TimeRange] = []
        for free in await self.list_availability(provider_id, start, end):
            cursor = free.start
            while cursor + duration <= free.end:
                slots.append(TimeRange(cursor, cursor + duration))
                cursor += step
        return slots

    async def update_schedule(self, schedule: ProviderSchedule) -> None:
        """Replace a provider's availability wholesale.

        Existing bookings are kept even if they now fall outside the windows.
        """
        async with self.locks.lock_for(schedule.provider_id):
            await self._load_provider(schedule.provider_id)
            await self.directory.save_schedule(schedule)
            self.calendar.replace_schedule(schedule)

    async def booking_history(self, user_id: str, role: Union[Actor, str]) -> list[Booking]:
        """All bookings for a provider or client, latest start first."""
        role = Actor(role)
        if role == Actor.PROVIDER:
            bookings = await self.repository.list_for_provider(user_id)
        elif role == Actor.CLIENT:
            bookings = await self.repository.list_for_client(user_id)
        else:
            raise InvalidInputError(f"History is kept per provider or client, not {role.value}")
        return sorted(bookings, key=lambda b: b.start, reverse=True)

    async def provider_stats(self, provider_id: str) -> ProviderStats:
        """Counts by status and completed revenue, in the provider's currency."""
        profile = await self.directory.get_profile(provider_id)
        bookings = await self.repository.list_for_provider(provider_id)
        counts = Counter(b.status for b in bookings)
        revenue = sum(
            b.payment.price.total for b in bookings if b.status == BookingStatus.COMPLETED
        )
        return ProviderStats(
            provider_id=provider_id,
            total=len(bookings),
            by_status=dict(counts),
            completed_revenue=revenue,
            currency=profile.currency,
        )
